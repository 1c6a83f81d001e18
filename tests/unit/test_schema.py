from __future__ import annotations

import pytest

from schemafield.exceptions import SchemaFieldError
from schemafield.schema import (
    declared_property_keys,
    default_value,
    find_one_of_branch,
    is_one_of_select,
    one_of_const_prop,
    resolve_schema,
    seed_branch,
)
from schemafield.typing.models import EffectiveSchema

OBJECT_SCHEMA = {
    "type": "object",
    "title": "Person",
    "required": ["name"],
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer"},
    },
}

ONE_OF_SCHEMA = {
    "type": "object",
    "properties": {"id": {"type": "string"}},
    "oneOf": [
        {"title": "A", "properties": {"kind": {"const": "a"}, "a1": {"type": "string", "default": "x"}}},
        {"title": "B", "properties": {"kind": {"const": "b"}, "b1": {"type": "string"}}},
    ],
}


def test_resolve_schema_lists_properties_with_required_flags() -> None:
    schema = resolve_schema(OBJECT_SCHEMA, {}, "person")

    assert schema is not None
    assert [(prop.key, prop.required) for prop in schema.properties or []] == [("name", True), ("age", False)]
    assert schema.properties[1].json_schema == {"type": "integer"}
    assert OBJECT_SCHEMA["properties"] == {"name": {"type": "string"}, "age": {"type": "integer"}}


def test_resolve_schema_is_idempotent_by_content() -> None:
    first = resolve_schema(OBJECT_SCHEMA, {}, "person")
    second = resolve_schema(dict(OBJECT_SCHEMA), {}, "person")

    assert first is not None
    assert second is not None
    assert first.fingerprint() == second.fingerprint()


def test_resolve_schema_returns_none_without_schema() -> None:
    assert resolve_schema(None, {}, "x") is None


def test_resolve_schema_applies_satisfied_dependencies() -> None:
    raw = {
        "type": "object",
        "properties": {"card": {"type": "string"}},
        "dependencies": {
            "card": {"properties": {"cvv": {"type": "string"}}, "required": ["cvv"]},
        },
    }

    without = resolve_schema(raw, {"pay": {}}, "pay")
    with_card = resolve_schema(raw, {"pay": {"card": "4242"}}, "pay")

    assert without is not None
    assert with_card is not None
    assert [prop.key for prop in without.properties or []] == ["card"]
    assert [(prop.key, prop.required) for prop in with_card.properties or []] == [("card", False), ("cvv", True)]


def test_resolve_schema_keeps_extensions_and_composition() -> None:
    raw = {"type": "string", "x-fromUrl": "/items/{a}?q={q}", "x-itemKey": "id", "x-custom": 1}

    schema = resolve_schema(raw, {}, "x")

    assert schema is not None
    assert schema.from_url == "/items/{a}?q={q}"
    assert schema.item_key == "id"
    assert schema.item_title == "title"
    assert schema.to_dict()["x-custom"] == 1


def test_item_icon_falls_back_to_item_key_in_icon_display() -> None:
    schema = EffectiveSchema.model_validate({"type": "string", "x-display": "icon", "x-itemKey": "code"})

    assert schema.item_icon == "code"


def test_default_value_by_shape() -> None:
    assert default_value(EffectiveSchema(type="object")) == {}
    assert default_value(EffectiveSchema.model_validate({"type": "object", "x-fromUrl": "/u"})) is None
    assert default_value(EffectiveSchema(type="array")) == []
    assert default_value(EffectiveSchema(type="string")) is None


def test_is_one_of_select_only_for_scalar_choices() -> None:
    scalar = EffectiveSchema.model_validate({"type": "string", "oneOf": [{"const": "a"}]})
    array = EffectiveSchema.model_validate({"type": "array", "items": {"type": "string", "oneOf": [{"const": "a"}]}})
    objects = resolve_schema(ONE_OF_SCHEMA, {}, "x")

    assert is_one_of_select(scalar)
    assert is_one_of_select(array)
    assert not is_one_of_select(objects)


def test_one_of_const_prop_is_first_property_declaring_const() -> None:
    schema = EffectiveSchema.model_validate(
        {
            "type": "object",
            "oneOf": [{"properties": {"label": {"type": "string"}, "flag": {"const": False}, "kind": {"const": "a"}}}],
        },
    )

    assert one_of_const_prop(schema) == {"const": False, "key": "flag"}


def test_find_one_of_branch_by_discriminator() -> None:
    schema = resolve_schema(ONE_OF_SCHEMA, {}, "x")

    assert find_one_of_branch(schema, "kind", "b")["title"] == "B"
    assert find_one_of_branch(schema, "kind", "z") is None


def test_seed_branch_copies_value_and_applies_const_then_defaults() -> None:
    base = {"kind": "b", "a1": "kept", "nested": {"v": 1}}
    branch = ONE_OF_SCHEMA["oneOf"][0]

    seeded = seed_branch(base, branch)

    assert seeded == {"kind": "a", "a1": "kept", "nested": {"v": 1}}
    seeded["nested"]["v"] = 2
    assert base["nested"] == {"v": 1}
    assert seed_branch(None, branch) == {"kind": "a", "a1": "x"}


def test_declared_property_keys_union() -> None:
    schema = EffectiveSchema.model_validate(
        {
            "type": "object",
            "properties": [{"key": "id", "schema": {"type": "string"}}],
            "allOf": [{"properties": {"x": {}}}, {"properties": {"y": {}}}],
            "oneOf": ONE_OF_SCHEMA["oneOf"],
        },
    )

    assert declared_property_keys(schema, None) == {"id", "x", "y"}
    assert declared_property_keys(schema, ONE_OF_SCHEMA["oneOf"][1]) == {"id", "x", "y", "kind", "b1"}


def test_resolve_schema_accepts_boolean_sub_schemas() -> None:
    schema = resolve_schema(
        {"type": "object", "properties": {"any": True}, "oneOf": [True, {"title": "B"}], "allOf": [False]},
        {},
        "obj",
    )

    assert schema is not None
    assert schema.properties is not None
    assert schema.properties[0].json_schema == {}
    assert schema.one_of == [{}, {"title": "B"}]
    assert schema.all_of == [{}]

    array_schema = resolve_schema({"type": "array", "items": True}, {}, "tags")
    assert array_schema is not None
    assert array_schema.items_schema == {}


def test_resolve_schema_wraps_malformed_keywords() -> None:
    with pytest.raises(SchemaFieldError, match="Invalid schema"):
        resolve_schema({"type": "string", "minLength": "two"}, {}, "name")
