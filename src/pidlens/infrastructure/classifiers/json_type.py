# src/pidlens/infrastructure/classifiers/json_type.py
from __future__ import annotations

import json
from typing import Any, Optional

from pidlens.core.abstractions.classifier import IdentifierClassifier


def parse_json_value(value: Any) -> Optional[Any]:
    """Return the decoded object/array, or None when ``value`` is not a JSON container."""
    if isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = json.loads(value.strip())
    except ValueError:
        return None
    return parsed if isinstance(parsed, (dict, list)) else None


class JSONType(IdentifierClassifier):
    key = "JSONType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.parsed: Optional[Any] = None

    async def detects_format(self) -> bool:
        return parse_json_value(self.value) is not None

    async def _resolve(self, data: Any = None) -> None:
        self.parsed = parse_json_value(self.value)
        if self.parsed is None:
            raise ValueError("Value is not a JSON object or array")

    def is_resolvable(self) -> bool:
        return False
