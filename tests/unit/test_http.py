from __future__ import annotations

import asyncio

import httpx
import pytest

from schemafield.exceptions import FetchError
from schemafield.http import HttpxCapability
from schemafield.settings import Settings


def _capability(monkeypatch, handler, **kwargs: str) -> HttpxCapability:
    monkeypatch.setattr(
        "schemafield.http.build_httpx_client_kwargs",
        lambda settings, target_url: {"transport": httpx.MockTransport(handler)},
    )
    return HttpxCapability(Settings(), **kwargs)


def test_get_decodes_json_payload(monkeypatch) -> None:
    seen: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=[{"key": 1}])

    capability = _capability(monkeypatch, _handler, base_url="https://api.example.com/")
    response = asyncio.run(capability.get("/items?q=a"))

    assert response.status_code == 200
    assert response.data == [{"key": 1}]
    assert seen == ["https://api.example.com/items?q=a"]


def test_get_maps_status_errors(monkeypatch) -> None:
    capability = _capability(monkeypatch, lambda request: httpx.Response(503))

    with pytest.raises(FetchError, match="failed with status 503"):
        asyncio.run(capability.get("https://api.example.com/items"))


def test_get_maps_invalid_json(monkeypatch) -> None:
    capability = _capability(monkeypatch, lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(FetchError, match="did not return JSON"):
        asyncio.run(capability.get("https://api.example.com/items"))


def test_get_maps_transport_errors(monkeypatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    capability = _capability(monkeypatch, _handler)

    with pytest.raises(FetchError, match="refused"):
        asyncio.run(capability.get("https://api.example.com/items"))


def test_build_client_kwargs_receive_target_url(monkeypatch) -> None:
    targets: list[str] = []

    def _kwargs(settings: Settings, target_url: str) -> dict:
        targets.append(target_url)
        return {"transport": httpx.MockTransport(lambda request: httpx.Response(200, json=[]))}

    monkeypatch.setattr("schemafield.http.build_httpx_client_kwargs", _kwargs)

    asyncio.run(HttpxCapability(Settings(), base_url="https://h").get("items"))

    assert targets == ["https://h/items"]
