"""Schema-centric domain models."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemafield.typing.enums import DisplayMode

SelectItem = dict[str, Any]
"""Normalized option: `{<item_key>: value, <item_title>: str, <item_icon>?: str, ...original fields}`."""


class SchemaProperty(BaseModel):
    """One declared property of an object schema, in declaration order."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    key: str
    required: bool = False
    json_schema: dict[str, Any] = Field(default_factory=dict, alias="schema")


class EffectiveSchema(BaseModel):
    """Resolved schema node for one field.

    Unknown keywords are kept as extras so the effective schema round-trips the
    raw document. Composition markers (`allOf`, `oneOf`) are preserved unmerged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str | list[str] | None = None
    title: str | None = None
    description: str | None = None
    format: str | None = None
    default: Any = None
    const: Any = None
    enum: list[Any] | None = None
    required: list[str] = Field(default_factory=list)
    properties: list[SchemaProperty] | None = None
    items: bool | dict[str, Any] | list[bool | dict[str, Any]] | None = None
    one_of: list[dict[str, Any]] | None = Field(default=None, alias="oneOf")
    all_of: list[dict[str, Any]] | None = Field(default=None, alias="allOf")
    additional_properties: bool | dict[str, Any] | None = Field(default=None, alias="additionalProperties")
    dependencies: dict[str, Any] | None = None

    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    minimum: float | None = None
    maximum: float | None = None
    pattern: str | None = None
    min_items: int | None = Field(default=None, alias="minItems")
    max_items: int | None = Field(default=None, alias="maxItems")

    from_url: str | None = Field(default=None, alias="x-fromUrl")
    from_data: str | None = Field(default=None, alias="x-fromData")
    items_prop: str | None = Field(default=None, alias="x-itemsProp")
    x_item_key: str | None = Field(default=None, alias="x-itemKey")
    x_item_title: str | None = Field(default=None, alias="x-itemTitle")
    x_item_icon: str | None = Field(default=None, alias="x-itemIcon")
    display: str | None = Field(default=None, alias="x-display")
    css_class: str | None = Field(default=None, alias="x-class")
    style: str | None = Field(default=None, alias="x-style")

    @field_validator("one_of", "all_of", mode="before")
    @classmethod
    def _open_boolean_branches(cls, value: Any) -> Any:  # noqa: ANN401
        """Read boolean branches (`true` / `false`) as empty sub-schemas."""
        if isinstance(value, list):
            return [{} if isinstance(branch, bool) else branch for branch in value]
        return value

    @property
    def has_default(self) -> bool:
        """Return whether the schema declares `default`, including an explicit null."""
        return "default" in self.model_fields_set

    @property
    def has_const(self) -> bool:
        """Return whether the schema declares `const`, including an explicit null."""
        return "const" in self.model_fields_set

    @property
    def item_key(self) -> str:
        return self.x_item_key or "key"

    @property
    def item_title(self) -> str:
        return self.x_item_title or "title"

    @property
    def item_icon(self) -> str | None:
        if self.x_item_icon:
            return self.x_item_icon
        return self.item_key if self.display == DisplayMode.ICON else None

    @property
    def items_schema(self) -> dict[str, Any]:
        """Return the `items` sub-schema of an array, or an empty mapping."""
        return self.items if isinstance(self.items, dict) else {}

    def is_type(self, name: str) -> bool:
        """Return whether `name` is the declared type (or one of the declared types)."""
        if isinstance(self.type, list):
            return name in self.type
        return self.type == name

    def to_dict(self) -> dict[str, Any]:
        """Dump the schema with its JSON keyword names, omitting unset keywords."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def fingerprint(self) -> str:
        """Return a canonical string used to detect content changes across re-created schemas."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
