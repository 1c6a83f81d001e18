"""Typing-centric domain modules."""

from schemafield.typing.enums import DisplayMode, EventType, FieldKind, WatchSource
from schemafield.typing.models import (
    EffectiveSchema,
    FieldEvent,
    FieldOptions,
    HttpResponse,
    RenderedField,
    SchemaProperty,
    SelectItem,
    SlotParams,
)
from schemafield.typing.protocol import HttpCapability, MarkdownRenderer, Widget

__all__ = [
    "DisplayMode",
    "EffectiveSchema",
    "EventType",
    "FieldEvent",
    "FieldKind",
    "FieldOptions",
    "HttpCapability",
    "HttpResponse",
    "MarkdownRenderer",
    "RenderedField",
    "SchemaProperty",
    "SelectItem",
    "SlotParams",
    "WatchSource",
    "Widget",
]
