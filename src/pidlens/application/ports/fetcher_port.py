# src/pidlens/application/ports/fetcher_port.py
"""
Metadata fetcher port interface.

Everything that talks to a metadata registry (resolver, classifiers) only
depends on this contract, so tests can swap in a canned fetcher.

``fresh_fetches()`` marks the current task as refreshing: fetchers must not
answer from stored responses and resolvers must not answer from their memo
until the block exits.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, Protocol, runtime_checkable

_fresh_fetch_var: ContextVar[bool] = ContextVar("pidlens_fresh_fetch", default=False)


@contextmanager
def fresh_fetches() -> Iterator[None]:
    token = _fresh_fetch_var.set(True)
    try:
        yield
    finally:
        _fresh_fetch_var.reset(token)


def fresh_fetch_requested() -> bool:
    return _fresh_fetch_var.get()


@runtime_checkable
class MetadataFetcherPort(Protocol):
    """Fetch and decode JSON documents from metadata registries."""

    async def fetch_json(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Return the decoded JSON body of ``url``.

        Inside ``fresh_fetches()`` the body must come from the network.

        Raises:
            FetchError: network failure or non-2xx status
            ParseError: body is not valid JSON
        """
        ...

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""
        ...
