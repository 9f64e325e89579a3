# src/pidlens/infrastructure/classifiers/date_type.py
"""ISO-8601 date-time values (a ``T`` time part is required)."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from pidlens.core.abstractions.classifier import IdentifierClassifier

_DATE_RE = re.compile(
    r"^([0-9]{4})-(0?[1-9]|1[0-2])-([0-2][0-9]|3[0-1])"
    r"(T([0-1][0-9]|2[0-3]):([0-5][0-9]):([0-5][0-9](\.[0-9]*)?"
    r"(Z|([+-]([0-1][0-9]|2[0-3]):[0-5][0-9]))))$"
)


def parse_iso_datetime(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


class DateType(IdentifierClassifier):
    key = "DateType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.date: Optional[datetime] = None

    async def detects_format(self) -> bool:
        return isinstance(self.value, str) and _DATE_RE.match(self.value) is not None

    async def _resolve(self, data: Any = None) -> None:
        self.date = parse_iso_datetime(self.value)

    def is_resolvable(self) -> bool:
        return False
