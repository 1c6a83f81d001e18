"""Capability interfaces consumed by the field core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@runtime_checkable
class HttpCapability(Protocol):
    """HTTP client used to fetch remote option lists."""

    def get(self, url: str) -> Any | Awaitable[Any]:  # noqa: ANN401
        """Fetch a URL.

        Args:
            url: Fully resolved request URL.

        Returns:
            A response (or awaitable response) exposing the payload as `data` or `body`,
            either as attributes or as mapping keys.
        """


@runtime_checkable
class MarkdownRenderer(Protocol):
    """Renderer for human-readable schema descriptions."""

    def render(self, text: str) -> str:
        """Render Markdown text.

        Args:
            text: Markdown source.

        Returns:
            str: HTML fragment.
        """


@runtime_checkable
class Widget(Protocol):
    """Renderer for one field kind."""

    def render(
        self,
        value: Any,  # noqa: ANN401
        on_input: Callable[[Any], None],
        rules: list[Callable[[Any], bool | str]],
        disabled: bool,  # noqa: FBT001
        label: str,
    ) -> Any:  # noqa: ANN401
        """Render a value editor.

        Args:
            value: Current value of the field.
            on_input: Callback receiving edited values.
            rules: Validation rules returning True or a message.
            disabled: Whether editing is disabled.
            label: Human-readable label.

        Returns:
            Any: Widget-specific rendering output.
        """
