"""Events and render outputs published by a field."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from schemafield.typing.enums import EventType
from schemafield.typing.models.schema import EffectiveSchema


class FieldEvent(BaseModel):
    """Event sent to the composing container."""

    model_config = ConfigDict(extra="forbid")

    type: EventType
    key: str | None = None
    model: Any = None
    message: str | None = None


class SlotParams(BaseModel):
    """Context handed to custom render slots."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    full_schema: EffectiveSchema
    full_key: str
    label: str
    disabled: bool
    required: bool
    rules: list[Callable[[Any], bool | str]] = Field(default_factory=list)
    html_description: str | None = None


class RenderedField(BaseModel):
    """Wrapper produced around the widget or slot output of one field."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    css_class: str
    style: str = ""
    slot_name: str
    children: list[Any] = Field(default_factory=list)
