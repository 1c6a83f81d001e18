"""Default HTTP capability backed by httpx."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

try:
    import httpx
except Exception:  # pragma: no cover - optional dependency at runtime
    httpx: Any
    httpx = None

from schemafield import logger
from schemafield.dependencies import ensure_http_dependencies
from schemafield.exceptions import FetchError
from schemafield.settings import build_httpx_client_kwargs
from schemafield.typing.models import HttpResponse

if TYPE_CHECKING:
    from schemafield.settings import Settings


class HttpxCapability:
    """Fetch option lists with `httpx.AsyncClient`, honoring TLS and proxy settings."""

    def __init__(self, settings: Settings, *, base_url: str | None = None) -> None:
        """Initialize capability.

        Args:
            settings (Settings): Runtime settings.
            base_url (str | None): Prefix for relative URL templates.
        """
        ensure_http_dependencies()
        self._settings = settings
        self.base_url = base_url

    def _absolute_url(self, url: str) -> str:
        if self.base_url and not url.startswith(("http://", "https://")):
            return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"
        return url

    async def get(self, url: str) -> HttpResponse:
        """Fetch a URL and decode its JSON body.

        Args:
            url (str): Request URL, absolute or relative to `base_url`.

        Raises:
            FetchError: If the request fails or the body is not JSON.

        Returns:
            HttpResponse: Decoded payload in `data`.
        """
        if httpx is None:
            raise FetchError(message="httpx is required for the default http capability", url=url)

        target = self._absolute_url(url)
        client_kwargs = build_httpx_client_kwargs(self._settings, target_url=target)
        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.get(target)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                message=f"Http fetch {target} failed with status {exc.response.status_code}",
                url=target,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(message=f"Http fetch {target} failed: {exc}", url=target) from exc
        except ValueError as exc:
            raise FetchError(message=f"Http fetch {target} did not return JSON", url=target) from exc

        logger.debug("Http fetch completed", extra={"url": target, "status_code": response.status_code})
        return HttpResponse(status_code=response.status_code, data=payload)
