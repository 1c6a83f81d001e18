"""Remote option list fetching from templated URLs."""

from __future__ import annotations

import inspect
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from schemafield import logger
from schemafield.exceptions import FetchError, HttpCapabilityError
from schemafield.structural import MISSING

if TYPE_CHECKING:
    from schemafield.typing.protocol import HttpCapability

_PLACEHOLDER_PATTERN = re.compile(r"\{(.*?)\}")
QUERY_PLACEHOLDER = "q"


def url_template_keys(template: str | None) -> list[str]:
    """Return placeholder names of a URL template, excluding `q`, in first-seen order.

    Args:
        template (str | None): URL template such as `/items/{a}?q={q}`.

    Returns:
        list[str]: Placeholder names.
    """
    if not template:
        return []
    keys: list[str] = []
    for key in _PLACEHOLDER_PATTERN.findall(template):
        if key != QUERY_PLACEHOLDER and key not in keys:
            keys.append(key)
    return keys


def has_query_placeholder(template: str | None) -> bool:
    """Return whether a URL template searches as the user types."""
    return template is not None and f"{{{QUERY_PLACEHOLDER}}}" in template


def _format_param(value: Any) -> str:  # noqa: ANN401
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(template: str, query: str | None, params: Mapping[str, Any]) -> str | None:
    """Substitute the query and every dependent placeholder of a URL template.

    Args:
        template (str): URL template.
        query (str | None): Free-text query; empty when unset.
        params (Mapping[str, Any]): Known placeholder values.

    Returns:
        str | None: Request URL, or None while any placeholder is still unresolved.
    """
    url = template.replace(f"{{{QUERY_PLACEHOLDER}}}", query or "")
    for key in url_template_keys(template):
        value = params.get(key, MISSING)
        if value is MISSING or value is None:
            return None
        url = url.replace(f"{{{key}}}", _format_param(value))
    return url


def _response_body(response: Any) -> Any:  # noqa: ANN401
    for name in ("data", "body"):
        if isinstance(response, Mapping):
            value = response.get(name)
        else:
            value = getattr(response, name, None)
        if value is not None:
            return value
    return None


class RemoteFetchCoordinator:
    """Fetch state of one field bound to an `x-fromUrl` template.

    Each request gets a generation number; a response older than the latest
    request is discarded so a slow stale response never overwrites a newer one.
    """

    def __init__(self, template: str, *, items_prop: str | None = None, http: HttpCapability | None = None) -> None:
        """Initialize coordinator.

        Args:
            template (str): URL template.
            items_prop (str | None): Response property holding the item array.
            http (HttpCapability | None): HTTP capability; required on first fetch.
        """
        self.template = template
        self.items_prop = items_prop
        self.http = http
        self.params: dict[str, Any] = {}
        self.loading = False
        self.error: str | None = None
        self.last_url: str | None = None
        self._generation = 0

    def retarget(self, template: str, *, items_prop: str | None = None) -> None:
        """Bind the coordinator to a new template; requests in flight become stale."""
        if template == self.template and items_prop == self.items_prop:
            return
        if template != self.template:
            self.params.clear()
        self.template = template
        self.items_prop = items_prop
        self.invalidate()

    def invalidate(self) -> None:
        """Discard the outcome of every request in flight."""
        self._generation += 1
        self.loading = False

    def set_param(self, key: str, value: Any) -> None:  # noqa: ANN401
        """Record the current value of one dependent placeholder."""
        self.params[key] = value

    def resolve_url(self, query: str | None) -> str | None:
        return build_url(self.template, query, self.params)

    async def fetch(self, query: str | None) -> list[Any] | None:
        """Fetch raw items for the current query and parameters.

        Args:
            query (str | None): Free-text query.

        Raises:
            HttpCapabilityError: If no HTTP capability is configured.
            FetchError: If the request fails or the payload is not an array.

        Returns:
            list[Any] | None: Raw items, or None when the URL is incomplete or the response is stale.
        """
        if self.http is None:
            raise HttpCapabilityError

        url = self.resolve_url(query)
        if url is None:
            logger.debug("Select items fetch deferred, URL parameters are incomplete", extra={"template": self.template})
            return None

        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None
        self.last_url = url
        logger.debug("Fetching select items", extra={"url": url})

        try:
            response = self.http.get(url)
            if inspect.isawaitable(response):
                response = await response
            items = self._extract_items(response, url)
        except Exception as exc:
            if generation != self._generation:
                logger.debug("Discarding stale select items failure", extra={"url": url, "error": str(exc)})
                return None
            self.loading = False
            self.error = str(exc)
            if isinstance(exc, FetchError):
                raise
            raise FetchError(message=f"Http fetch {url} failed: {exc}", url=url) from exc

        if generation != self._generation:
            logger.debug("Discarding stale select items response", extra={"url": url})
            return None
        self.loading = False
        return items

    def _extract_items(self, response: Any, url: str) -> list[Any]:  # noqa: ANN401
        body = _response_body(response)
        items = body
        if self.items_prop:
            items = body.get(self.items_prop) if isinstance(body, Mapping) else None
        if not isinstance(items, list):
            raise FetchError(message=f"Result of http fetch {url} is not an array", url=url)
        return items
