"""Option list computation for enum-like fields."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from schemafield.structural import MISSING, ModelKey, ModelWrapper, slot_value, structurally_equal
from schemafield.typing.models import EffectiveSchema, SelectItem


def _normalize_item(raw_item: Any, item_key: str, item_title: str) -> SelectItem:  # noqa: ANN401
    if isinstance(raw_item, Mapping):
        item = copy.deepcopy(dict(raw_item))
        if item.get(item_title) is None and item.get(item_key) is not None:
            item[item_title] = str(item[item_key])
        return item
    return {item_key: raw_item, item_title: raw_item}


def _item_value(value: Any, item_key: str) -> Any:  # noqa: ANN401
    return value.get(item_key) if isinstance(value, Mapping) else value


def _selected_values(schema: EffectiveSchema, model_wrapper: ModelWrapper, model_key: ModelKey) -> list[Any]:
    model = slot_value(model_wrapper, model_key)
    if model is MISSING or model is None or model == "":
        return []
    if schema.is_type("array"):
        return [value for value in model if value is not None] if isinstance(model, list) else []
    return [model]


def enum_select_items(schema: EffectiveSchema) -> list[Any] | None:
    """Return the literal enum of a field (`items.enum` for arrays), if any."""
    if schema.is_type("array"):
        return schema.items_schema.get("enum")
    return schema.enum


def one_of_select_items(schema: EffectiveSchema, item_key: str, item_title: str) -> list[SelectItem]:
    """Turn `oneOf` branches on scalars into raw items keyed by their `const` or first `enum` value."""
    branches = schema.items_schema.get("oneOf", []) if schema.is_type("array") else schema.one_of or []
    items: list[SelectItem] = []
    for branch in branches:
        if "const" in branch:
            key = branch["const"]
        else:
            key = (branch.get("enum") or [None])[0]
        items.append({**branch, item_key: key, item_title: branch.get("title")})
    return items


def get_select_items(
    raw_items: list[Any] | None,
    schema: EffectiveSchema,
    model_wrapper: ModelWrapper,  # noqa: ARG001
    model_key: ModelKey,  # noqa: ARG001
    item_key: str,
) -> list[SelectItem]:
    """Normalize raw items into select items.

    Args:
        raw_items (list[Any] | None): Items from any source.
        schema (EffectiveSchema): Effective schema of the field.
        model_wrapper (ModelWrapper): Owner of the value under edit.
        model_key (ModelKey): Slot of the value inside the wrapper.
        item_key (str): Name of the key field of each item.

    Returns:
        list[SelectItem]: Normalized items; empty when there is no source.
    """
    if not raw_items:
        return []
    return [_normalize_item(raw_item, item_key, schema.item_title) for raw_item in raw_items]


def _append_missing(
    select_items: list[SelectItem],
    values: list[Any],
    schema: EffectiveSchema,
    item_key: str,
    *,
    keep_objects: bool,
) -> None:
    known = [item.get(item_key) for item in select_items]
    for value in values:
        key = _item_value(value, item_key)
        if any(structurally_equal(key, candidate) for candidate in known):
            continue
        if keep_objects and isinstance(value, Mapping):
            select_items.append(_normalize_item(value, item_key, schema.item_title))
        else:
            select_items.append(_normalize_item(key, item_key, schema.item_title))
        known.append(key)


def fill_list(
    schema: EffectiveSchema,
    model_wrapper: ModelWrapper,
    model_key: ModelKey,
    select_items: list[SelectItem],
    item_key: str,
) -> None:
    """Append a synthetic item for each selected key missing from a fixed list display."""
    values = _selected_values(schema, model_wrapper, model_key)
    _append_missing(select_items, values, schema, item_key, keep_objects=False)


def fill_select_items(
    schema: EffectiveSchema,
    model_wrapper: ModelWrapper,
    model_key: ModelKey,
    select_items: list[SelectItem],
    item_key: str,
) -> None:
    """Append each selected value missing from a select; object selections are kept whole."""
    values = _selected_values(schema, model_wrapper, model_key)
    _append_missing(select_items, values, schema, item_key, keep_objects=True)
