"""Runtime dependency checks for optional capabilities."""

from __future__ import annotations

import importlib.util

from schemafield.exceptions import DependencyError


def _is_module_available(module_name: str) -> bool:
    """Check whether a module can be imported.

    Args:
        module_name (str): Python module name.

    Returns:
        bool: True if import spec exists.
    """
    return importlib.util.find_spec(module_name) is not None


def _collect_missing_dependencies(modules_by_package: dict[str, str]) -> list[str]:
    """Collect missing packages for a module mapping.

    Args:
        modules_by_package (Mapping[str, str]): Mapping of package name -> import module.

    Returns:
        list[str]: Missing package names.
    """
    return [package for package, module in modules_by_package.items() if not _is_module_available(module)]


def ensure_http_dependencies() -> None:
    """Validate dependencies of the default HTTP capability.

    Raises:
        DependencyError: If required runtime dependencies are missing.
    """
    missing = _collect_missing_dependencies(
        {
            "httpx": "httpx",
            "certifi": "certifi",
        },
    )
    if missing:
        raise DependencyError(missing_package=missing, message="http capability")


def ensure_markdown_dependencies() -> None:
    """Validate dependencies of the default Markdown renderer.

    Raises:
        DependencyError: If the markdown package is missing.
    """
    missing = _collect_missing_dependencies({"markdown": "markdown"})
    if missing:
        raise DependencyError(missing_package=missing, message="markdown renderer")


def ensure_cli_dependencies_for_resolve() -> None:
    """Validate required runtime dependencies for `schemafield resolve`.

    Raises:
        DependencyError: If one or more required modules are missing.
    """
    missing = _collect_missing_dependencies(
        {
            "httpx": "httpx",
            "markdown": "markdown",
        },
    )

    if missing:
        raise DependencyError(missing_package=missing, message="resolve")
