"""Per-classifier settings buckets: ``[{type, values: [{name, value}]}]``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

DEFAULT_TTL_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class SettingValue:
    name: str
    value: Any = None

    @classmethod
    def from_any(cls, raw: Union["SettingValue", Dict[str, Any]]) -> "SettingValue":
        if isinstance(raw, SettingValue):
            return raw
        return cls(name=str(raw.get("name") or ""), value=raw.get("value"))


@dataclass
class SettingsBucket:
    type: str
    values: List[SettingValue] = field(default_factory=list)

    @classmethod
    def from_any(cls, raw: Union["SettingsBucket", Dict[str, Any]]) -> "SettingsBucket":
        if isinstance(raw, SettingsBucket):
            return raw
        return cls(
            type=str(raw.get("type") or ""),
            values=[SettingValue.from_any(v) for v in raw.get("values") or []],
        )


SettingsInput = Optional[Iterable[Union[SettingsBucket, Dict[str, Any]]]]


def normalize_settings(settings: SettingsInput) -> List[SettingsBucket]:
    return [SettingsBucket.from_any(raw) for raw in settings or []]


def find_bucket(settings: SettingsInput, key: str) -> Optional[List[SettingValue]]:
    """Return the values of the first bucket whose type matches ``key``."""
    for bucket in normalize_settings(settings):
        if bucket.type == key:
            return list(bucket.values)
    return None


def get_setting(values: Optional[Iterable[SettingValue]], name: str, default: Any = None) -> Any:
    for setting in values or []:
        if setting.name == name:
            return setting.value
    return default


def ttl_for(settings: SettingsInput, key: str, default_ms: int = DEFAULT_TTL_MS) -> int:
    """TTL override (milliseconds) of the ``key`` bucket, or ``default_ms``."""
    raw = get_setting(find_bucket(settings, key), "ttl")
    if raw is None:
        return default_ms
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default_ms
