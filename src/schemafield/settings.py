"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import ipaddress
import logging
import ssl
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import Field, PrivateAttr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemafield.exceptions import SettingsError

NoProxyNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_MESSAGE = "This information is required"


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "schemafield"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )
    http_proxy: str | None = Field(default=None, validation_alias="HTTP_PROXY", description="HTTP proxy URL.")
    https_proxy: str | None = Field(
        default=None,
        validation_alias="HTTPS_PROXY",
        description="HTTPS proxy URL.",
    )
    all_proxy: str | None = Field(default=None, validation_alias="ALL_PROXY", description="All proxy URL.")
    no_proxy: str | None = Field(
        default=None,
        validation_alias="NO_PROXY",
        description="Comma-separated list of hosts to bypass proxy.",
    )

    cert_path: str | None = Field(
        default=None,
        validation_alias="CERT_PATH",
        description="Path to SSL certificate.",
    )
    timeout: float = Field(
        default=30.0,
        validation_alias="TIMEOUT",
        description="Request timeout in seconds for option list fetches.",
    )

    remove_additional_properties: bool = Field(
        default=False,
        validation_alias="REMOVE_ADDITIONAL_PROPERTIES",
        description="Strip object keys that are not declared by the active schema.",
    )
    required_message: str = Field(
        default=DEFAULT_REQUIRED_MESSAGE,
        validation_alias="REQUIRED_MESSAGE",
        description="Message returned by required-value rules.",
    )
    disable_all: bool = Field(
        default=False,
        validation_alias="DISABLE_ALL",
        description="Render every field as disabled.",
    )
    _no_proxy_hosts: tuple[str, ...] = PrivateAttr(default=())
    _no_proxy_networks: tuple[NoProxyNetwork, ...] = PrivateAttr(default=())

    def model_post_init(self, __context: object, /) -> None:
        """Initialize derived runtime settings."""
        self._no_proxy_hosts, self._no_proxy_networks = parse_no_proxy(self.no_proxy)

    @property
    def no_proxy_hosts(self) -> tuple[str, ...]:
        """Return normalized NO_PROXY host suffixes."""
        return self._no_proxy_hosts

    @property
    def no_proxy_networks(self) -> tuple[NoProxyNetwork, ...]:
        """Return parsed NO_PROXY CIDR networks."""
        return self._no_proxy_networks

    def should_bypass_proxy(self, target_url: str | None) -> bool:
        """Return whether the URL should bypass proxies."""
        return _is_no_proxy_target(target_url, self)


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    """Build a strict SSL context from settings.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        ssl.SSLContext: Configured TLS context.
    """
    ssl_context = ssl.create_default_context(cafile=settings.cert_path)
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    return ssl_context


def parse_no_proxy(no_proxy: str | None) -> tuple[tuple[str, ...], tuple[NoProxyNetwork, ...]]:
    """Split NO_PROXY into host suffixes and CIDR networks.

    Args:
        no_proxy (str | None): Raw NO_PROXY value.

    Returns:
        tuple[tuple[str, ...], tuple[NoProxyNetwork, ...]]: Host suffixes and networks.
    """
    if not no_proxy:
        return (), ()

    hosts: list[str] = []
    networks: list[NoProxyNetwork] = []
    for raw_entry in no_proxy.split(","):
        entry = raw_entry.strip().lower()
        if not entry:
            continue
        if entry == "*":
            # empty suffix matches every host
            hosts.append("")
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
            continue
        except ValueError:
            pass
        if "://" in entry:
            entry = urlparse(entry).hostname or ""
        host = entry.split(":", 1)[0].strip("[]").removeprefix("*").removeprefix(".")
        if host:
            hosts.append(host)
    return tuple(hosts), tuple(networks)


def _is_no_proxy_target(target_url: str | None, settings: Settings) -> bool:
    """Return whether the target URL should bypass proxies.

    Args:
        target_url (str | None): Target request URL.
        settings (Settings): Runtime settings.

    Returns:
        bool: True when proxy must be bypassed.
    """
    if not target_url:
        return False

    hostname = urlparse(target_url).hostname
    if not hostname:
        return False

    host = hostname.lower().strip("[]")
    for suffix in settings.no_proxy_hosts:
        if not suffix or host == suffix or host.endswith(f".{suffix}"):
            return True

    try:
        host_ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return any(host_ip in network for network in settings.no_proxy_networks)


def build_httpx_client_kwargs(
    settings: Settings,
    *,
    target_url: str | None = None,
    force_no_proxy: bool = False,
) -> dict[str, Any]:
    """Build kwargs used for `httpx.AsyncClient`.

    Args:
        settings (Settings): Runtime settings.
        target_url (str | None): Optional target URL used for NO_PROXY evaluation.
        force_no_proxy (bool): If true, always build kwargs without proxy.

    Returns:
        dict[str, Any]: Arguments for client constructors.
    """
    proxy_url = settings.https_proxy or settings.http_proxy or settings.all_proxy

    kwargs: dict[str, Any] = {
        "verify": build_ssl_context(settings),
        "timeout": settings.timeout,
    }

    should_bypass = force_no_proxy or _is_no_proxy_target(target_url, settings)
    if proxy_url and not should_bypass:
        kwargs["proxy"] = proxy_url

    return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            ensure_env_file_exists()
            try:
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
