"""Application ports (interfaces) used by the application layer."""

from .fetcher_port import MetadataFetcherPort, fresh_fetch_requested, fresh_fetches

__all__ = [
    "MetadataFetcherPort",
    "fresh_fetch_requested",
    "fresh_fetches",
]
