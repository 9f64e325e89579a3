# src/pidlens/infrastructure/classifiers/locale_type.py
from __future__ import annotations

import re
from typing import Any

from pidlens.core.abstractions.classifier import IdentifierClassifier

_LOCALE_RE = re.compile(r"^([a-zA-Z]{2})(-[A-Z]{2})?$")


class LocaleType(IdentifierClassifier):
    """Language tags such as ``de`` or ``en-US``; rendering is left to the UI."""

    key = "LocaleType"

    async def detects_format(self) -> bool:
        return isinstance(self.value, str) and _LOCALE_RE.match(self.value) is not None

    async def _resolve(self, data: Any = None) -> None:
        return None

    def is_resolvable(self) -> bool:
        return False
