"""Error taxonomy shared by the resolution pipeline.

A value that no classifier recognizes is not an error: it ends up in the
fallback classifier. Everything else derives from ``PidLensError``.
"""

from __future__ import annotations

from typing import Optional


class PidLensError(Exception):
    """Base class for all resolution errors."""


class FetchError(PidLensError):
    """Network or HTTP status failure while fetching metadata."""

    def __init__(self, url: str, status: Optional[int] = None, message: str = ""):
        self.url = url
        self.status = status
        detail = message or (f"HTTP {status}" if status is not None else "no response")
        super().__init__(f"Failed to fetch {url}: {detail}")


class ParseError(PidLensError):
    """A response body could not be interpreted."""


class CacheError(PidLensError):
    """The durable store or the HTTP response cache is unavailable."""
