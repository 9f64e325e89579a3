from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from pidlens.application.ports.fetcher_port import fresh_fetches
from pidlens.domain.errors import CacheError, FetchError, ParseError
from pidlens.infrastructure.api_clients.cached_fetch import CachedFetcher
from pidlens.infrastructure.stores.response_cache_store import CachedResponse, ResponseCacheStore


@pytest.fixture
def response_cache(db_url):
    store = ResponseCacheStore(db_url)
    yield store
    store.close()


@pytest.mark.asyncio
async def test_successful_response_is_served_from_cache(response_cache):
    fetcher = CachedFetcher(response_cache, cache_name="test")
    fetcher._get = AsyncMock(return_value=(200, '{"ok": true}', "application/json"))

    first = await fetcher.fetch_json("https://api.example/x")
    second = await fetcher.fetch_json("https://api.example/x")

    assert first == second == {"ok": True}
    assert fetcher._get.await_count == 1
    stored = response_cache.match("test", "https://api.example/x")
    assert stored.content_type == "application/json"


@pytest.mark.asyncio
async def test_fresh_fetches_skip_and_replace_the_stored_response(response_cache):
    fetcher = CachedFetcher(response_cache, cache_name="test")
    fetcher._get = AsyncMock(side_effect=[(200, '{"v": 1}', ""), (200, '{"v": 2}', "")])

    assert await fetcher.fetch_json("https://api.example/x") == {"v": 1}
    with fresh_fetches():
        assert await fetcher.fetch_json("https://api.example/x") == {"v": 2}
    assert await fetcher.fetch_json("https://api.example/x") == {"v": 2}

    assert fetcher._get.await_count == 2


@pytest.mark.asyncio
async def test_error_status_raises_and_is_not_cached(response_cache):
    fetcher = CachedFetcher(response_cache, cache_name="test")
    fetcher._get = AsyncMock(return_value=(404, "not found", "text/plain"))

    with pytest.raises(FetchError) as exc_info:
        await fetcher.fetch_json("https://api.example/missing")

    assert exc_info.value.status == 404
    assert response_cache.match("test", "https://api.example/missing") is None


@pytest.mark.asyncio
async def test_cache_names_are_isolated(response_cache):
    response_cache.put("other", CachedResponse(url="https://api.example/x", status=200, body="[1]"))
    fetcher = CachedFetcher(response_cache, cache_name="test")
    fetcher._get = AsyncMock(return_value=(200, "[2]", ""))

    assert await fetcher.fetch_json("https://api.example/x") == [2]

    fetcher.clear_cache()
    assert response_cache.match("test", "https://api.example/x") is None
    assert response_cache.match("other", "https://api.example/x") is not None


@pytest.mark.asyncio
async def test_plain_http_tries_https_first_then_falls_back():
    fetcher = CachedFetcher()
    fetcher._get = AsyncMock(side_effect=[aiohttp.ClientConnectionError("refused"), (200, "{}", "")])

    assert await fetcher.fetch_json("http://legacy.example/a") == {}

    urls = [call.args[0] for call in fetcher._get.await_args_list]
    assert urls == ["https://legacy.example/a", "http://legacy.example/a"]


@pytest.mark.asyncio
async def test_https_url_without_response_raises_fetch_error():
    fetcher = CachedFetcher()
    fetcher._get = AsyncMock(side_effect=aiohttp.ClientConnectionError("down"))

    with pytest.raises(FetchError):
        await fetcher.fetch_json("https://down.example/a")
    assert fetcher._get.await_count == 1


@pytest.mark.asyncio
async def test_non_json_body_raises_parse_error():
    fetcher = CachedFetcher()
    fetcher._get = AsyncMock(return_value=(200, "<html></html>", "text/html"))

    with pytest.raises(ParseError):
        await fetcher.fetch_json("https://api.example/html")


@pytest.mark.asyncio
async def test_broken_response_cache_falls_through_to_network():
    store = MagicMock()
    store.match.side_effect = CacheError("db locked")
    store.put.side_effect = CacheError("db locked")
    fetcher = CachedFetcher(store)
    fetcher._get = AsyncMock(return_value=(200, '{"a": 1}', ""))

    assert await fetcher.fetch_json("https://api.example/a") == {"a": 1}
    assert fetcher._get.await_count == 1


@pytest.mark.asyncio
async def test_close_without_session_is_noop():
    async with CachedFetcher() as fetcher:
        assert fetcher._session is None
    assert fetcher._session is None


@pytest.mark.asyncio
async def test_get_reads_status_body_and_content_type():
    fetcher = CachedFetcher()
    with patch.object(fetcher, "_get_session") as mock_session:
        mock_response = AsyncMock()
        mock_response.status = 200
        mock_response.text = AsyncMock(return_value='{"values": []}')
        mock_response.headers = {"Content-Type": "application/json"}

        mock_get = MagicMock(return_value=AsyncMock(__aenter__=AsyncMock(return_value=mock_response)))
        mock_session.return_value.get = mock_get

        result = await fetcher.fetch_json("https://hdl.handle.net/api/handles/21.T1/x", headers={"Accept": "application/json"})

        assert result == {"values": []}
        called_url = mock_get.call_args.args[0]
        assert called_url == "https://hdl.handle.net/api/handles/21.T1/x"
        assert mock_get.call_args.kwargs["headers"] == {"Accept": "application/json"}
