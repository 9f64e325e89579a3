from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class EntityModel(Base):
    """Last resolved state of one identifier value."""

    __tablename__ = "entities"

    value: Mapped[str] = mapped_column(String(2048), primary_key=True)
    classifier_key: Mapped[str] = mapped_column(String(64), default="")
    context: Mapped[str] = mapped_column(String(512), default="", index=True)
    last_access: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def set_last_data(self, data: Any) -> None:
        self.last_data_json = None if data is None else json.dumps(data, ensure_ascii=False)

    def get_last_data(self) -> Any:
        if self.last_data_json is None:
            return None
        return json.loads(self.last_data_json)


class RelationModel(Base):
    """(start, predicate, end) edge between an identifier and one of its item values."""

    __tablename__ = "relations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start: Mapped[str] = mapped_column(String(2048), index=True)
    predicate: Mapped[str] = mapped_column(String(512), default="", index=True)
    end: Mapped[str] = mapped_column(Text, default="", index=True)


class HttpResponseModel(Base):
    __tablename__ = "http_responses"
    __table_args__ = (UniqueConstraint("cache_name", "url", name="uq_http_responses_cache_url"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cache_name: Mapped[str] = mapped_column(String(64), default="", index=True)
    url: Mapped[str] = mapped_column(String(2048), index=True)
    status: Mapped[int] = mapped_column(Integer, default=200)
    content_type: Mapped[str] = mapped_column(String(128), default="")
    body: Mapped[str] = mapped_column(Text, default="")
    stored_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
