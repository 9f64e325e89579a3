"""Entity store — CRUD for the entities and relations tables."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple

from loguru import logger
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pidlens.domain.errors import CacheError
from pidlens.infrastructure.stores.models import Base, EntityModel, RelationModel
from pidlens.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url
from pidlens.utils.logging_config import LogFiles, Logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class EntityRow:
    value: str
    classifier_key: str
    context: str
    last_access: datetime
    last_data: Any


@dataclass(frozen=True)
class RelationRow:
    id: int
    start: str
    predicate: str
    end: str


class EntityStore:
    """Durable value-keyed store of resolved classifier state plus discovered edges."""

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    # --- reads ---

    def get(self, value: str) -> Optional[EntityRow]:
        try:
            with self._provider.session() as session:
                row = session.get(EntityModel, value)
                if row is None:
                    return None
                return EntityRow(
                    value=row.value,
                    classifier_key=row.classifier_key,
                    context=row.context,
                    last_access=_as_aware(row.last_access),
                    last_data=row.get_last_data(),
                )
        except SQLAlchemyError as e:
            raise CacheError(f"Could not read entity {value!r}: {e}") from e

    def list_relations(self, value: str) -> List[RelationRow]:
        """All edges where ``value`` is the start or the end."""
        try:
            with self._provider.session() as session:
                rows = (
                    session.execute(
                        select(RelationModel)
                        .where(or_(RelationModel.start == value, RelationModel.end == value))
                        .order_by(RelationModel.id)
                    )
                    .scalars()
                    .all()
                )
                return [RelationRow(id=r.id, start=r.start, predicate=r.predicate, end=r.end) for r in rows]
        except SQLAlchemyError as e:
            raise CacheError(f"Could not read relations of {value!r}: {e}") from e

    def count_entities(self) -> int:
        with self._provider.session() as session:
            return len(session.execute(select(EntityModel.value)).all())

    # --- writes ---

    def add(
        self,
        value: str,
        *,
        classifier_key: str,
        context: str,
        last_data: Any,
        last_access: Optional[datetime] = None,
    ) -> bool:
        """Insert the entity row. Returns False when a row for ``value`` already exists."""
        try:
            with self._provider.session() as session:
                row = EntityModel(
                    value=value,
                    classifier_key=classifier_key,
                    context=context,
                    last_access=last_access or _utcnow(),
                )
                row.set_last_data(last_data)
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    logger.debug("Entity already exists: {}", value)
                    return False
                Logger.info(f"Stored entity {value} as {classifier_key}", file=LogFiles.CACHE)
                return True
        except SQLAlchemyError as e:
            raise CacheError(f"Could not add entity {value!r}: {e}") from e

    def add_relations(self, start: str, edges: Iterable[Tuple[str, str]]) -> int:
        """Append ``(start, predicate, end)`` rows, skipping exact duplicates."""
        created = 0
        try:
            with self._provider.session() as session:
                existing = {
                    (r.start, r.predicate, r.end)
                    for r in session.execute(
                        select(RelationModel).where(RelationModel.start == start)
                    ).scalars()
                }
                for predicate, end in edges:
                    triple = (start, predicate, end)
                    if triple in existing:
                        continue
                    session.add(RelationModel(start=start, predicate=predicate, end=end))
                    existing.add(triple)
                    created += 1
                session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Could not add relations for {start!r}: {e}") from e
        return created

    def delete(self, value: str) -> None:
        """Remove the entity and every relation where it is the start or the end."""
        try:
            with self._provider.session() as session:
                session.execute(delete(EntityModel).where(EntityModel.value == value))
                session.execute(
                    delete(RelationModel).where(
                        or_(RelationModel.start == value, RelationModel.end == value)
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Could not delete entity {value!r}: {e}") from e
        Logger.info(f"Deleted entity {value}", file=LogFiles.CACHE)

    def clear(self) -> None:
        try:
            with self._provider.session() as session:
                session.execute(delete(RelationModel))
                session.execute(delete(EntityModel))
                session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Could not clear entities: {e}") from e
        Logger.info("Cleared all entities", file=LogFiles.CACHE)

    def close(self) -> None:
        try:
            self._provider.engine.dispose()
        except Exception:
            pass
