"""Field configuration and HTTP payload models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from schemafield.settings import DEFAULT_REQUIRED_MESSAGE
from schemafield.typing.protocol import HttpCapability, MarkdownRenderer

if TYPE_CHECKING:
    from schemafield.settings import Settings


class FieldOptions(BaseModel):
    """Explicit configuration threaded through every field of a form.

    `context` holds the ambient values addressed by `{context.<name>}` URL placeholders.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    http: HttpCapability | None = None
    markdown: MarkdownRenderer | None = None
    remove_additional_properties: bool = False
    required_message: str = DEFAULT_REQUIRED_MESSAGE
    disable_all: bool = False
    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> FieldOptions:  # noqa: ANN401
        """Build options from runtime settings.

        Args:
            settings (Settings): Runtime settings.
            **overrides: Explicit option values taking precedence over settings.

        Returns:
            FieldOptions: Field options.
        """
        values: dict[str, Any] = {
            "remove_additional_properties": settings.remove_additional_properties,
            "required_message": settings.required_message,
            "disable_all": settings.disable_all,
        }
        values.update(overrides)
        return cls(**values)


class HttpResponse(BaseModel):
    """Payload returned by the default HTTP capability."""

    model_config = ConfigDict(extra="forbid")

    status_code: int = 200
    data: Any = None
    body: Any = None
