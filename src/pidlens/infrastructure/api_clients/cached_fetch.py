# src/pidlens/infrastructure/api_clients/cached_fetch.py
"""
URL-keyed HTTP response cache in front of aiohttp.

Lookup order for ``fetch_json(url)``:
1. stored response for ``url`` in the named cache -> decoded body (skipped
   inside ``fresh_fetches()``; the refetched body replaces the stored one)
2. network: plain ``http://`` URLs are tried over https first and retried
   once over http when the secure attempt gets no response
3. 2xx responses are stored, then decoded

Without a response store (or when the store fails) every call goes to the
network.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp
from aiohttp import ClientTimeout

from pidlens.application.ports.fetcher_port import fresh_fetch_requested
from pidlens.config import DEFAULT_CACHE_NAME
from pidlens.domain.errors import CacheError, FetchError, ParseError
from pidlens.infrastructure.stores.response_cache_store import CachedResponse, ResponseCacheStore

logger = logging.getLogger(__name__)

USER_AGENT = "pidlens/0.3"


def _https_variant(url: str) -> Optional[str]:
    if url.lower().startswith("http://"):
        return "https://" + url[len("http://"):]
    return None


class CachedFetcher:
    """Async JSON fetcher backed by an optional ``ResponseCacheStore``."""

    def __init__(
        self,
        response_cache: Optional[ResponseCacheStore] = None,
        *,
        cache_name: str = DEFAULT_CACHE_NAME,
        timeout: float = 30.0,
    ):
        self.response_cache = response_cache
        self.cache_name = cache_name
        self.timeout = ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "CachedFetcher":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # --- cache tier ---

    def _lookup(self, url: str) -> Optional[CachedResponse]:
        if self.response_cache is None or fresh_fetch_requested():
            return None
        try:
            return self.response_cache.match(self.cache_name, url)
        except CacheError as e:
            logger.warning(f"Response cache unavailable, fetching directly: {e}")
            return None

    def _store(self, response: CachedResponse) -> None:
        if self.response_cache is None:
            return
        try:
            self.response_cache.put(self.cache_name, response)
        except CacheError as e:
            logger.warning(f"Could not store response for {response.url}: {e}")

    def clear_cache(self) -> None:
        if self.response_cache is not None:
            self.response_cache.clear(self.cache_name)

    # --- network tier ---

    async def _get(
        self, url: str, headers: Optional[Dict[str, str]], timeout: Optional[float]
    ) -> Tuple[int, str, str]:
        session = await self._get_session()
        kwargs: Dict[str, Any] = {"headers": headers or {}}
        if timeout is not None:
            kwargs["timeout"] = ClientTimeout(total=timeout)
        async with session.get(url, **kwargs) as resp:
            body = await resp.text()
            content_type = resp.headers.get("Content-Type", "") if resp.headers else ""
            return resp.status, body, content_type

    async def _fetch_network(
        self, url: str, headers: Optional[Dict[str, str]], timeout: Optional[float]
    ) -> Tuple[int, str, str]:
        secure = _https_variant(url)
        if secure is not None:
            try:
                return await self._get(secure, headers, timeout)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"No response from {secure} ({e}), retrying over insecure http: {url}")
        try:
            return await self._get(url, headers, timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(url, message=str(e) or type(e).__name__) from e

    async def fetch_text(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        cached = self._lookup(url)
        if cached is not None:
            logger.debug(f"Response cache hit: {url}")
            return cached.body

        status, body, content_type = await self._fetch_network(url, headers, timeout)
        if not 200 <= status < 300:
            raise FetchError(url, status=status)
        self._store(CachedResponse(url=url, status=status, body=body, content_type=content_type))
        return body

    async def fetch_json(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        body = await self.fetch_text(url, headers=headers, timeout=timeout)
        try:
            return json.loads(body)
        except ValueError as e:
            raise ParseError(f"Response from {url} is not JSON: {e}") from e
