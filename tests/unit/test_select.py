from __future__ import annotations

from schemafield.select import (
    enum_select_items,
    fill_list,
    fill_select_items,
    get_select_items,
    one_of_select_items,
)
from schemafield.typing.models import EffectiveSchema


def _schema(raw: dict) -> EffectiveSchema:
    return EffectiveSchema.model_validate(raw)


def test_enum_select_items_reads_items_enum_for_arrays() -> None:
    assert enum_select_items(_schema({"type": "string", "enum": ["a", "b"]})) == ["a", "b"]
    assert enum_select_items(_schema({"type": "array", "items": {"type": "string", "enum": ["x"]}})) == ["x"]
    assert enum_select_items(_schema({"type": "string"})) is None


def test_get_select_items_normalizes_scalars_and_mappings() -> None:
    schema = _schema({"type": "string", "enum": ["a", "b"]})

    assert get_select_items(["a", "b"], schema, {}, "x", "key") == [
        {"key": "a", "title": "a"},
        {"key": "b", "title": "b"},
    ]
    assert get_select_items([{"key": 1}, {"key": 2, "title": "Two"}], schema, {}, "x", "key") == [
        {"key": 1, "title": "1"},
        {"key": 2, "title": "Two"},
    ]
    assert get_select_items(None, schema, {}, "x", "key") == []


def test_get_select_items_does_not_mutate_raw_items() -> None:
    raw = [{"key": "a"}]
    get_select_items(raw, _schema({"type": "string"}), {}, "x", "key")

    assert raw == [{"key": "a"}]


def test_one_of_select_items_from_const_or_first_enum() -> None:
    schema = _schema(
        {
            "type": "string",
            "oneOf": [{"const": "fr", "title": "France"}, {"enum": ["de", "at"], "title": "German"}],
        },
    )

    items = one_of_select_items(schema, "key", "title")

    assert [(item["key"], item["title"]) for item in items] == [("fr", "France"), ("de", "German")]


def test_fill_select_items_appends_missing_selected_value() -> None:
    schema = _schema({"type": "string", "enum": ["a", "b"]})
    items = get_select_items(["a", "b"], schema, {"x": "c"}, "x", "key")

    fill_select_items(schema, {"x": "c"}, "x", items, "key")

    assert items[-1] == {"key": "c", "title": "c"}
    assert len(items) == 3


def test_fill_select_items_keeps_selected_objects_whole() -> None:
    schema = _schema({"type": "object", "x-fromUrl": "/items"})
    wrapper = {"x": {"key": "k1", "title": "One", "extra": True}}
    items: list[dict] = []

    fill_select_items(schema, wrapper, "x", items, "key")

    assert items == [{"key": "k1", "title": "One", "extra": True}]


def test_fill_list_appends_each_missing_array_value_once() -> None:
    schema = _schema({"type": "array", "x-display": "list", "items": {"type": "string", "enum": ["a"]}})
    wrapper = {"x": ["a", "z", "z", None]}
    items = get_select_items(["a"], schema, wrapper, "x", "key")

    fill_list(schema, wrapper, "x", items, "key")

    assert [item["key"] for item in items] == ["a", "z"]


def test_fill_select_items_ignores_empty_values() -> None:
    schema = _schema({"type": "string", "enum": ["a"]})
    items = get_select_items(["a"], schema, {"x": None}, "x", "key")

    fill_select_items(schema, {"x": None}, "x", items, "key")
    fill_select_items(schema, {}, "x", items, "key")

    assert items == [{"key": "a", "title": "a"}]
