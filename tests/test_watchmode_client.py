"""Tests for the Watchmode sources client."""

from __future__ import annotations

import httpx
import pytest

from app.errors import MissingCredentialError, UpstreamError
from app.services.watchmode import WatchmodeClient
from conftest import build_settings, mock_http_client

SOURCES = [
    {
        "source_id": 203,
        "name": "Netflix",
        "type": "sub",
        "region": "US",
        "web_url": "https://www.netflix.com/title/20557937",
        "format": "HD",
        "price": None,
    },
    {
        "source_id": 26,
        "name": "Amazon",
        "type": "rent",
        "region": "US",
        "web_url": "https://www.amazon.com/gp/video/detail/B000I9YLWG",
        "format": "HD",
        "price": 3.99,
    },
    {"name": "", "type": "buy"},
]


@pytest.mark.anyio("asyncio")
async def test_find_by_external_id_resolves_then_lists_sources() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        assert request.url.params["apiKey"] == "watchmode-key"
        if request.url.path == "/search/":
            assert request.url.params["search_field"] == "imdb_id"
            assert request.url.params["search_value"] == "tt0133093"
            return httpx.Response(200, json={"title_results": [{"id": 1295258}]})
        assert request.url.params["source_types"] == "sub,rent,buy,free,tve"
        return httpx.Response(200, json=SOURCES)

    async with mock_http_client(handler) as http_client:
        client = WatchmodeClient(build_settings(), http_client)
        offers = await client.find_by_external_id("tt0133093")

    assert paths == ["/search/", "/title/1295258/sources/"]
    assert [(offer.name, offer.kind, offer.price) for offer in offers] == [
        ("Netflix", "sub", None),
        ("Amazon", "rent", "$3.99"),
    ]
    assert offers[0].web_url == "https://www.netflix.com/title/20557937"
    assert offers[0].region == "US"


@pytest.mark.anyio("asyncio")
async def test_falls_back_to_imdb_id_when_search_is_empty() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/search/":
            return httpx.Response(200, json={"title_results": []})
        return httpx.Response(200, json=[])

    async with mock_http_client(handler) as http_client:
        client = WatchmodeClient(build_settings(), http_client)
        offers = await client.find_by_external_id("tt0133093")

    assert paths[-1] == "/title/tt0133093/sources/"
    assert offers == []


@pytest.mark.anyio("asyncio")
async def test_unknown_title_returns_no_offers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search/":
            return httpx.Response(200, json={"title_results": []})
        return httpx.Response(404, json={"success": False})

    async with mock_http_client(handler) as http_client:
        client = WatchmodeClient(build_settings(), http_client)
        offers = await client.find_by_external_id("tt0000001")

    assert offers == []


@pytest.mark.anyio("asyncio")
async def test_server_error_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal error")

    async with mock_http_client(handler) as http_client:
        client = WatchmodeClient(build_settings(), http_client)
        with pytest.raises(UpstreamError):
            await client.find_by_external_id("tt0133093")


@pytest.mark.anyio("asyncio")
async def test_missing_key_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - not reached
        raise AssertionError("Network access should not be triggered")

    async with mock_http_client(handler) as http_client:
        client = WatchmodeClient(build_settings(WATCHMODE_API_KEY=None), http_client)
        with pytest.raises(MissingCredentialError, match="WATCHMODE_API_KEY"):
            await client.find_by_external_id("tt0133093")


@pytest.mark.anyio("asyncio")
async def test_retries_with_imdb_id_when_resolved_title_has_no_sources() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/search/":
            return httpx.Response(200, json={"title_results": [{"id": 1295258}]})
        if request.url.path == "/title/1295258/sources/":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=SOURCES[:1])

    async with mock_http_client(handler) as http_client:
        client = WatchmodeClient(build_settings(), http_client)
        offers = await client.find_by_external_id("tt0133093")

    assert paths == ["/search/", "/title/1295258/sources/", "/title/tt0133093/sources/"]
    assert [offer.name for offer in offers] == ["Netflix"]
