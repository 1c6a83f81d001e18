from __future__ import annotations

import copy

from schemafield.reconciler import CURRENT_ONE_OF, ModelReconciler, all_of_sub_model_name
from schemafield.schema import resolve_schema

ONE_OF_SCHEMA = {
    "type": "object",
    "properties": {"id": {"type": "string"}},
    "oneOf": [
        {"title": "A", "properties": {"kind": {"const": "a"}, "a1": {"type": "string", "default": "x"}}},
        {"title": "B", "properties": {"kind": {"const": "b"}, "b1": {"type": "string"}}},
    ],
}


def _reconcile(raw: dict, wrapper: dict, key: str = "value", **kwargs: bool) -> ModelReconciler:
    reconciler = ModelReconciler(wrapper, key, **kwargs)
    schema = resolve_schema(raw, wrapper, key)
    assert schema is not None
    reconciler.reconcile(schema)
    return reconciler


def test_defaults_by_shape() -> None:
    wrapper: dict = {}
    _reconcile({"type": "object"}, wrapper, "o")
    _reconcile({"type": "array"}, wrapper, "a")
    _reconcile({"type": "string"}, wrapper, "s")

    assert wrapper == {"o": {}, "a": [], "s": None}


def test_explicit_default_is_copied() -> None:
    raw = {"type": "object", "default": {"tags": ["a"]}}
    wrapper: dict = {}

    _reconcile(raw, wrapper)
    wrapper["value"]["tags"].append("b")

    assert raw["default"] == {"tags": ["a"]}


def test_existing_value_is_kept() -> None:
    wrapper = {"value": "typed"}

    _reconcile({"type": "string", "default": "d"}, wrapper)

    assert wrapper["value"] == "typed"


def test_const_wins_over_existing_value() -> None:
    wrapper = {"value": "b"}

    _reconcile({"type": "string", "const": "a"}, wrapper)

    assert wrapper["value"] == "a"


def test_hexcolor_null_becomes_empty_string() -> None:
    wrapper = {"value": None}

    _reconcile({"type": "string", "format": "hexcolor"}, wrapper)

    assert wrapper["value"] == ""


def test_array_nulls_are_compacted() -> None:
    wrapper = {"value": [1, None, 2, None]}

    _reconcile({"type": "array", "items": {"type": "integer"}}, wrapper)

    assert wrapper["value"] == [1, 2]


def test_reconciliation_is_idempotent() -> None:
    raw = {
        "type": "object",
        "additionalProperties": False,
        "allOf": [{"properties": {"x": {"default": 1}}}],
        **{key: value for key, value in ONE_OF_SCHEMA.items() if key != "type"},
    }
    wrapper = {"value": {"kind": "b", "extra": True}}

    reconciler = _reconcile(raw, wrapper)
    first = copy.deepcopy(wrapper)
    schema = resolve_schema(raw, wrapper, "value")
    assert schema is not None
    reconciler.reconcile(schema)

    assert wrapper == first
    assert first["value"] == {"kind": "b", "x": 1}


def test_all_of_branch_defaults_are_merged() -> None:
    raw = {
        "type": "object",
        "allOf": [{"properties": {"x": {"default": 1}}}, {"properties": {"y": {"default": 2}}}],
    }
    wrapper: dict = {}

    reconciler = _reconcile(raw, wrapper)

    assert wrapper["value"] == {"x": 1, "y": 2}
    assert reconciler.sub_models[all_of_sub_model_name(0)] == {"x": 1}
    assert reconciler.sub_models[all_of_sub_model_name(1)] == {"y": 2}


def test_one_of_variant_selected_from_discriminator() -> None:
    wrapper = {"value": {"kind": "b"}}

    reconciler = _reconcile(ONE_OF_SCHEMA, wrapper)

    assert reconciler.current_one_of is not None
    assert reconciler.current_one_of["title"] == "B"
    assert reconciler.sub_models[CURRENT_ONE_OF] == {"kind": "b"}


def test_one_of_variant_selected_from_schema_default() -> None:
    raw = {**ONE_OF_SCHEMA, "default": {"kind": "a"}}
    wrapper: dict = {}

    reconciler = _reconcile(raw, wrapper)

    assert reconciler.current_one_of is not None
    assert reconciler.current_one_of["title"] == "A"
    assert wrapper["value"] == {"kind": "a", "a1": "x"}


def test_no_variant_without_discriminator_value() -> None:
    wrapper: dict = {}

    reconciler = _reconcile(ONE_OF_SCHEMA, wrapper)

    assert reconciler.current_one_of is None
    assert reconciler.sub_models[CURRENT_ONE_OF] == {}


def test_cleanup_only_in_strict_mode() -> None:
    raw = {"type": "object", "properties": {"a": {"type": "string"}}}

    lenient = {"value": {"a": "1", "z": 1}}
    _reconcile(raw, lenient)
    assert lenient["value"] == {"a": "1", "z": 1}

    strict_option = {"value": {"a": "1", "z": 1}}
    _reconcile(raw, strict_option, remove_additional_properties=True)
    assert strict_option["value"] == {"a": "1"}

    strict_schema = {"value": {"a": "1", "z": 1}}
    _reconcile({**raw, "additionalProperties": False}, strict_schema)
    assert strict_schema["value"] == {"a": "1"}


def test_cleanup_skipped_when_nothing_is_declared() -> None:
    wrapper = {"value": {"z": 1}}

    _reconcile({"type": "object", "additionalProperties": False}, wrapper)

    assert wrapper["value"] == {"z": 1}


def test_update_sub_model_merges_and_cleans() -> None:
    raw = {**ONE_OF_SCHEMA, "additionalProperties": False}
    wrapper = {"value": {"kind": "a", "id": "1"}}
    reconciler = _reconcile(raw, wrapper)

    changed = reconciler.update_sub_model(CURRENT_ONE_OF, "a1", "edited")

    assert changed is True
    assert wrapper["value"] == {"kind": "a", "id": "1", "a1": "edited"}


def test_stale_sub_model_does_not_revert_direct_edit() -> None:
    raw = {"type": "object", "allOf": [{"properties": {"x": {"default": 1}}}, {"properties": {"y": {}}}]}
    wrapper: dict = {}
    reconciler = _reconcile(raw, wrapper)

    wrapper["value"]["x"] = 5
    reconciler.update_sub_model(all_of_sub_model_name(1), "y", "set")

    assert wrapper["value"] == {"x": 5, "y": "set"}
    assert reconciler.sub_models[all_of_sub_model_name(0)]["x"] == 5


def test_one_of_switch_removes_previous_variant_properties() -> None:
    raw = {**ONE_OF_SCHEMA, "additionalProperties": False}
    wrapper = {"value": {"kind": "a", "a1": "x", "id": "1"}}
    reconciler = _reconcile(raw, wrapper)
    branch_b = ONE_OF_SCHEMA["oneOf"][1]

    reconciler.begin_one_of_switch(branch_b)
    assert reconciler.sub_models[CURRENT_ONE_OF] == {}
    changed = reconciler.complete_one_of_switch()

    assert changed is True
    assert wrapper["value"] == {"kind": "b", "id": "1"}
    assert reconciler.sub_models[CURRENT_ONE_OF] == {"kind": "b", "id": "1"}


def test_reconciliation_tolerates_partial_data() -> None:
    wrapper = {"value": "not an object"}

    reconciler = _reconcile(ONE_OF_SCHEMA, wrapper)

    assert wrapper["value"] == "not an object"
    assert reconciler.current_one_of is None


def test_list_wrapper_slot() -> None:
    wrapper: list = []
    reconciler = ModelReconciler(wrapper, 1)
    schema = resolve_schema({"type": "string", "default": "d"}, wrapper, 1)
    assert schema is not None

    reconciler.reconcile(schema)

    assert wrapper == [None, "d"]
    assert reconciler.model == "d"
