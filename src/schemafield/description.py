"""Default Markdown renderer for schema descriptions."""

from __future__ import annotations

from typing import Any

from schemafield.dependencies import ensure_markdown_dependencies


class PythonMarkdownRenderer:
    """Render descriptions with the `markdown` package, imported on first use."""

    def __init__(self, extensions: list[str] | None = None) -> None:
        """Initialize renderer.

        Args:
            extensions (list[str] | None): Extensions passed to `markdown.markdown`.
        """
        self.extensions = extensions or ["extra"]
        self._module: Any = None

    def render(self, text: str) -> str:
        """Render Markdown text into an HTML fragment.

        Args:
            text (str): Markdown source.

        Returns:
            str: HTML fragment.
        """
        if self._module is None:
            ensure_markdown_dependencies()
            import markdown  # noqa: PLC0415

            self._module = markdown
        return self._module.markdown(text, extensions=self.extensions)
