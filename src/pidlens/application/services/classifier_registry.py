"""
Ordered registry of classifier factories.

Entries are ``(priority, key, factory)``; lower priority wins. The last entry
is the catch-all fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from pidlens.core.abstractions.classifier import ClassifierContext, IdentifierClassifier
from pidlens.domain.settings import SettingValue

ClassifierFactory = Callable[..., IdentifierClassifier]


@dataclass(frozen=True)
class RegistryEntry:
    priority: int
    key: str
    factory: ClassifierFactory


class ClassifierRegistry:
    def __init__(self, entries: Iterable[RegistryEntry], context: Optional[ClassifierContext] = None):
        self._entries: List[RegistryEntry] = sorted(entries, key=lambda e: e.priority)
        if not self._entries:
            raise ValueError("A classifier registry needs at least one entry")
        self._factories: Dict[str, ClassifierFactory] = {e.key: e.factory for e in self._entries}
        self.context = context or ClassifierContext()

    @property
    def entries(self) -> Sequence[RegistryEntry]:
        return tuple(self._entries)

    @property
    def fallback(self) -> RegistryEntry:
        return self._entries[-1]

    def keys(self) -> List[str]:
        return [e.key for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def create(
        self,
        key: str,
        value: Any,
        settings: Optional[Iterable[SettingValue]] = None,
    ) -> IdentifierClassifier:
        """Build the classifier registered under ``key``; raises KeyError for unknown keys."""
        factory = self._factories.get(key)
        if factory is None:
            raise KeyError(f"No classifier registered under {key!r}")
        return factory(value, settings, self.context)


def default_entries() -> List[RegistryEntry]:
    from pidlens.infrastructure.classifiers import (
        DateType,
        DOIType,
        EmailType,
        FallbackType,
        HandleType,
        JSONType,
        LocaleType,
        ORCIDType,
        RORType,
        SPDXType,
        URLType,
    )

    return [
        RegistryEntry(0, DateType.key, DateType),
        RegistryEntry(1, ORCIDType.key, ORCIDType),
        RegistryEntry(2, DOIType.key, DOIType),
        RegistryEntry(3, HandleType.key, HandleType),
        RegistryEntry(4, RORType.key, RORType),
        RegistryEntry(5, SPDXType.key, SPDXType),
        RegistryEntry(6, EmailType.key, EmailType),
        RegistryEntry(7, URLType.key, URLType),
        RegistryEntry(8, LocaleType.key, LocaleType),
        RegistryEntry(9, JSONType.key, JSONType),
        RegistryEntry(99, FallbackType.key, FallbackType),
    ]


def default_registry(context: Optional[ClassifierContext] = None) -> ClassifierRegistry:
    return ClassifierRegistry(default_entries(), context)
