"""Schema resolution: raw schema node + model context -> effective schema."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from schemafield.exceptions import SchemaFieldError
from schemafield.structural import MISSING, ModelKey, ModelWrapper, slot_value
from schemafield.typing.models import EffectiveSchema

_SCALAR_TYPES = frozenset({"string", "integer", "number"})


def resolve_schema(
    raw_schema: Mapping[str, Any] | None,
    model_wrapper: ModelWrapper,
    model_key: ModelKey,
) -> EffectiveSchema | None:
    """Build the effective schema of one field.

    The raw schema is never mutated. Object `properties` become an ordered list
    carrying their key and required flag; property `dependencies` satisfied by the
    current value extend that list. `allOf` / `oneOf` are kept as-is.

    Args:
        raw_schema (Mapping[str, Any] | None): Schema node as found in the document.
        model_wrapper (ModelWrapper): Owner of the value under edit.
        model_key (ModelKey): Slot of the value inside the wrapper.

    Returns:
        EffectiveSchema | None: Effective schema, or None when there is no schema.

    Raises:
        SchemaFieldError: If a keyword holds a value of the wrong shape.
    """
    if raw_schema is None:
        return None

    full_schema: dict[str, Any] = copy.deepcopy(dict(raw_schema))
    raw_properties = full_schema.get("properties")
    is_object = full_schema.get("type") == "object" or isinstance(raw_properties, Mapping)
    if not is_object or isinstance(raw_properties, list):
        return _validate(full_schema)

    properties: dict[str, Any] = dict(raw_properties or {})
    required: list[str] = list(full_schema.get("required") or [])

    model = slot_value(model_wrapper, model_key)
    for dep_key, dependency in (full_schema.get("dependencies") or {}).items():
        if not isinstance(model, Mapping) or model.get(dep_key, MISSING) in (MISSING, None):
            continue
        if isinstance(dependency, list):
            required.extend(key for key in dependency if key not in required)
            continue
        for key, prop_schema in (dependency.get("properties") or {}).items():
            properties.setdefault(key, prop_schema)
        required.extend(key for key in dependency.get("required") or [] if key not in required)

    full_schema["required"] = required
    full_schema["properties"] = [
        {
            "key": key,
            "required": key in required,
            "schema": dict(prop_schema) if isinstance(prop_schema, Mapping) else {},
        }
        for key, prop_schema in properties.items()
    ]
    return _validate(full_schema)


def _validate(full_schema: dict[str, Any]) -> EffectiveSchema:
    try:
        return EffectiveSchema.model_validate(full_schema)
    except ValidationError as exc:
        msg = f"Invalid schema: {exc.error_count()} malformed keyword(s)"
        raise SchemaFieldError(msg) from exc


def default_value(schema: EffectiveSchema) -> Any:  # noqa: ANN401
    """Return the empty value matching a schema's shape."""
    if schema.is_type("object") and not schema.from_url and not schema.from_data and not schema.enum:
        return {}
    if schema.is_type("array"):
        return []
    return None


def is_one_of_select(schema: EffectiveSchema) -> bool:
    """Return whether a `oneOf` describes choices between scalar values rather than sub-objects."""
    if schema.is_type("array"):
        items = schema.items_schema
        return bool(items.get("oneOf")) and items.get("type") in _SCALAR_TYPES
    return bool(schema.one_of) and isinstance(schema.type, str) and schema.type in _SCALAR_TYPES


def one_of_const_prop(schema: EffectiveSchema) -> dict[str, Any] | None:
    """Return the discriminator property of an object `oneOf`, with its key.

    The discriminator is the first property of the first branch that carries `const`.
    """
    if not schema.one_of:
        return None
    properties = schema.one_of[0].get("properties") or {}
    for key, prop_schema in properties.items():
        if isinstance(prop_schema, Mapping) and "const" in prop_schema:
            return {**prop_schema, "key": key}
    return None


def find_one_of_branch(schema: EffectiveSchema, const_key: str, value: Any) -> dict[str, Any] | None:  # noqa: ANN401
    """Return the `oneOf` branch whose discriminator constant equals `value`."""
    for branch in schema.one_of or []:
        prop_schema = (branch.get("properties") or {}).get(const_key)
        if isinstance(prop_schema, Mapping) and "const" in prop_schema and prop_schema["const"] == value:
            return branch
    return None


def seed_branch(base: Any, branch: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ANN401
    """Return a private copy of `base` seeded from a composition branch.

    Direct properties of the branch contribute their `const` (always) or their
    `default` (only for keys the copy does not hold yet).

    Args:
        base (Any): Current value of the object field.
        branch (Mapping[str, Any]): `allOf` or `oneOf` branch schema.

    Returns:
        dict[str, Any]: Seeded copy.
    """
    seeded: dict[str, Any] = copy.deepcopy(dict(base)) if isinstance(base, Mapping) else {}
    for key, prop_schema in (branch.get("properties") or {}).items():
        if not isinstance(prop_schema, Mapping):
            continue
        if "const" in prop_schema:
            seeded[key] = copy.deepcopy(prop_schema["const"])
        elif "default" in prop_schema and key not in seeded:
            seeded[key] = copy.deepcopy(prop_schema["default"])
    return seeded


def declared_property_keys(schema: EffectiveSchema, active_one_of: Mapping[str, Any] | None) -> set[str]:
    """Return keys declared by the schema, every `allOf` branch and the active `oneOf` branch."""
    keys = {prop.key for prop in schema.properties or []}
    for branch in schema.all_of or []:
        keys.update((branch.get("properties") or {}).keys())
    if active_one_of:
        keys.update((active_one_of.get("properties") or {}).keys())
    return keys
