"""Core domain model exports."""

from schemafield.typing.models.events import FieldEvent, RenderedField, SlotParams
from schemafield.typing.models.options import FieldOptions, HttpResponse
from schemafield.typing.models.schema import EffectiveSchema, SchemaProperty, SelectItem

__all__ = [
    "EffectiveSchema",
    "FieldEvent",
    "FieldOptions",
    "HttpResponse",
    "RenderedField",
    "SchemaProperty",
    "SelectItem",
    "SlotParams",
]
