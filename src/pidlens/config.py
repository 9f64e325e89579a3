"""Runtime configuration read from ``PIDLENS_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from pidlens.domain.settings import DEFAULT_TTL_MS

DEFAULT_DB_URL = "sqlite:///data/pidlens.db"
DEFAULT_CACHE_NAME = "pid-component"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class PidLensConfig:
    db_url: str = DEFAULT_DB_URL
    default_ttl_ms: int = DEFAULT_TTL_MS
    max_depth: int = 2
    http_timeout: float = 30.0
    http_cache_enabled: bool = True
    cache_name: str = DEFAULT_CACHE_NAME
    context: str = "cli"

    @classmethod
    def from_env(cls) -> "PidLensConfig":
        return cls(
            db_url=os.getenv("PIDLENS_DB_URL", DEFAULT_DB_URL),
            default_ttl_ms=int(os.getenv("PIDLENS_DEFAULT_TTL_MS", str(DEFAULT_TTL_MS))),
            max_depth=int(os.getenv("PIDLENS_MAX_DEPTH", "2")),
            http_timeout=float(os.getenv("PIDLENS_HTTP_TIMEOUT", "30")),
            http_cache_enabled=_env_bool("PIDLENS_HTTP_CACHE", True),
            cache_name=os.getenv("PIDLENS_CACHE_NAME", DEFAULT_CACHE_NAME),
            context=os.getenv("PIDLENS_CONTEXT", "cli"),
        )
