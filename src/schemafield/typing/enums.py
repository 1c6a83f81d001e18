"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class FieldKind(_EnumMixin):
    """Rendering variant of a field, selected once from its effective schema."""

    SCALAR = "scalar"
    DATE = "date"
    COLOR = "color"
    OBJECT_CONTAINER = "object_container"
    ARRAY_CONTAINER = "array_container"


class DisplayMode(_EnumMixin):
    """Values of the `x-display` schema extension understood by the core."""

    HIDDEN = "hidden"
    LIST = "list"
    ICON = "icon"


class EventType(_EnumMixin):
    """Events published by a field to its container."""

    INPUT = "input"
    CHANGE = "change"
    ERROR = "error"


class WatchSource(_EnumMixin):
    """Documents a watch subscription can observe."""

    ROOT_MODEL = "root_model"
    CONTEXT = "context"
