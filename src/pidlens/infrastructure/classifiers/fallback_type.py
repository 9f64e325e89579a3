# src/pidlens/infrastructure/classifiers/fallback_type.py
from __future__ import annotations

from typing import Any

from pidlens.core.abstractions.classifier import IdentifierClassifier


class FallbackType(IdentifierClassifier):
    """Accepts every value and shows it as plain text."""

    key = "FallbackType"

    async def detects_format(self) -> bool:
        return True

    async def _resolve(self, data: Any = None) -> None:
        return None

    def is_resolvable(self) -> bool:
        return False
