"""schemafield package."""

from schemafield.async_runner import run_async
from schemafield.exceptions import (
    AsyncExecutionError,
    DependencyError,
    FetchError,
    HttpCapabilityError,
    PackageError,
    SchemaFieldError,
    SettingsError,
)
from schemafield.logging import configure_logging, get_logger
from schemafield.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("schemafield")

__all__ = [
    "AsyncExecutionError",
    "DependencyError",
    "FetchError",
    "HttpCapabilityError",
    "PackageError",
    "SchemaFieldError",
    "Settings",
    "SettingsError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
    "run_async",
]
