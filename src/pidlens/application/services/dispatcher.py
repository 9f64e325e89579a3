"""
Picks the classifier for a raw value and drives its resolution.

Two matching policies are kept side by side:

- ``best_fit`` scans the registry from the last entry to the first and keeps
  overwriting its choice with every classifier that accepts the value, so the
  match with the lowest registry index wins. Nothing matching -> fallback.
- ``estimate_priority`` scans from the first entry and returns the index of
  the first classifier that accepts the value (0 when none does). It only
  ranks item values for sorting.

With format checks that are pure functions of the value both agree; they can
diverge when a check is not deterministic (e.g. it performs async validation).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pidlens.application.ports.fetcher_port import fresh_fetches
from pidlens.application.services.classifier_registry import ClassifierRegistry
from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.settings import SettingsInput, find_bucket

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, registry: ClassifierRegistry):
        self.registry = registry

    async def best_fit(self, value: Any) -> IdentifierClassifier:
        best = self.registry.create(self.registry.fallback.key, value)
        for entry in reversed(self.registry.entries):
            candidate = self.registry.create(entry.key, value)
            if await candidate.detects_format():
                best = candidate
        return best

    async def estimate_priority(self, value: Any) -> int:
        for index, entry in enumerate(self.registry.entries):
            if await self.registry.create(entry.key, value).detects_format():
                return index
        return 0

    def attach_settings(self, classifier: IdentifierClassifier, settings: SettingsInput) -> None:
        values = find_bucket(settings, classifier.settings_key())
        if values is not None:
            classifier.settings = values

    async def annotate(self, classifier: IdentifierClassifier) -> None:
        """Fill the type-priority hint of every item rendered as a nested identifier."""
        for item in classifier.items:
            if item.render_dynamically:
                item.estimated_type_priority = await self.estimate_priority(item.value)

    async def prepare(self, value: Any, settings: SettingsInput = None) -> IdentifierClassifier:
        """Best-fit classifier for ``value`` with its settings bucket attached, not yet resolved."""
        classifier = await self.best_fit(value)
        self.attach_settings(classifier, settings)
        return classifier

    async def complete(
        self,
        classifier: IdentifierClassifier,
        data: Optional[Any] = None,
        *,
        fresh: bool = False,
    ) -> IdentifierClassifier:
        logger.debug(f"Dispatching {classifier.value!r} to {classifier.settings_key()} (fresh={fresh})")
        if fresh:
            with fresh_fetches():
                await classifier.resolve(data)
        else:
            await classifier.resolve(data)
        await self.annotate(classifier)
        return classifier

    async def dispatch(
        self,
        value: Any,
        settings: SettingsInput = None,
        data: Optional[Any] = None,
    ) -> IdentifierClassifier:
        classifier = await self.prepare(value, settings)
        return await self.complete(classifier, data)
