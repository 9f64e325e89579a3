# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import pidlens` works without an install.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from pidlens.domain.errors import FetchError  # noqa: E402
from pidlens.utils.logging_config import Logger  # noqa: E402

Responder = Union[Any, Callable[[str], Any], Exception]


class FakeFetcher:
    """MetadataFetcherPort double: URL -> canned JSON, counting every call."""

    def __init__(self, responses: Optional[Dict[str, Responder]] = None):
        self.responses: Dict[str, Responder] = dict(responses or {})
        self.calls: List[str] = []
        self.headers: List[Optional[Dict[str, str]]] = []
        self.closed = False

    async def fetch_json(self, url: str, headers=None, timeout=None) -> Any:
        self.calls.append(url)
        self.headers.append(headers)
        if url not in self.responses:
            raise FetchError(url, status=404)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(url)
        return response

    async def close(self) -> None:
        self.closed = True

    def count(self, fragment: str) -> int:
        return sum(1 for url in self.calls if fragment in url)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("PIDLENS_LOG_DIR", str(log_dir))
    Logger.init(base_dir=str(log_dir))
    yield
    Logger.close()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'pidlens.db'}"
