"""Field kind selection: which external widget renders a field."""

from __future__ import annotations

from typing import TYPE_CHECKING

from schemafield.schema import is_one_of_select
from schemafield.select import enum_select_items
from schemafield.typing.enums import FieldKind

if TYPE_CHECKING:
    from schemafield.typing.models import EffectiveSchema

_DATE_FORMATS = frozenset({"date", "date-time", "time"})


def is_select(schema: EffectiveSchema) -> bool:
    """Return whether the field picks its value from an option list."""
    return bool(schema.from_url or schema.from_data or enum_select_items(schema) or is_one_of_select(schema))


def select_field_kind(schema: EffectiveSchema) -> FieldKind:
    """Select the rendering variant of a field once from its effective schema.

    Args:
        schema (EffectiveSchema): Effective schema of the field.

    Returns:
        FieldKind: Rendering variant.
    """
    if schema.is_type("string") and schema.format in _DATE_FORMATS:
        return FieldKind.DATE
    if schema.is_type("string") and schema.format == "hexcolor":
        return FieldKind.COLOR
    if is_select(schema):
        return FieldKind.SCALAR
    if schema.is_type("object"):
        return FieldKind.OBJECT_CONTAINER
    if schema.is_type("array"):
        return FieldKind.ARRAY_CONTAINER
    return FieldKind.SCALAR
