"""URL-keyed HTTP response storage backing the cached fetcher."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pidlens.domain.errors import CacheError
from pidlens.infrastructure.stores.models import Base, HttpResponseModel
from pidlens.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


@dataclass(frozen=True)
class CachedResponse:
    url: str
    status: int
    body: str
    content_type: str = ""


class ResponseCacheStore:
    """Stores raw response bodies per ``(cache_name, url)``."""

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def match(self, cache_name: str, url: str) -> Optional[CachedResponse]:
        try:
            with self._provider.session() as session:
                row = session.execute(
                    select(HttpResponseModel).where(
                        HttpResponseModel.cache_name == cache_name,
                        HttpResponseModel.url == url,
                    )
                ).scalar_one_or_none()
                if row is None:
                    return None
                return CachedResponse(
                    url=row.url, status=row.status, body=row.body, content_type=row.content_type
                )
        except SQLAlchemyError as e:
            raise CacheError(f"Response cache lookup failed for {url}: {e}") from e

    def put(self, cache_name: str, response: CachedResponse) -> None:
        """Insert or replace the stored response for ``response.url``."""
        try:
            with self._provider.session() as session:
                row = session.execute(
                    select(HttpResponseModel).where(
                        HttpResponseModel.cache_name == cache_name,
                        HttpResponseModel.url == response.url,
                    )
                ).scalar_one_or_none()
                if row is None:
                    row = HttpResponseModel(cache_name=cache_name, url=response.url)
                    session.add(row)
                row.status = response.status
                row.body = response.body
                row.content_type = response.content_type
                row.stored_at = datetime.now(timezone.utc)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    logger.debug("Response for {} was stored by a concurrent writer", response.url)
        except SQLAlchemyError as e:
            raise CacheError(f"Response cache write failed for {response.url}: {e}") from e

    def clear(self, cache_name: str) -> None:
        try:
            with self._provider.session() as session:
                session.execute(
                    delete(HttpResponseModel).where(HttpResponseModel.cache_name == cache_name)
                )
                session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Response cache clear failed: {e}") from e

    def close(self) -> None:
        try:
            self._provider.engine.dispose()
        except Exception:
            pass
