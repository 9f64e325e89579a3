"""EntityCache — TTL-aware, value-keyed cache of resolved classifiers.

``get_entity(value, settings)``:
  1. normalize ``value`` to a string key
  2. stored row, fresh for its classifier's TTL -> rebuild that classifier and
     ``resolve(stored_payload)`` (no network)
  3. stored row but stale (or TTL 0) -> delete row + relations, fall through
  4. dispatcher best-fit -> ``resolve()`` -> ``add_entity``; after step 3, or
     when the matched classifier has TTL 0, resolution runs inside
     ``fresh_fetches()`` so stored HTTP responses and resolver memos are
     bypassed

Store failures never reach the caller: lookups fall through to a fresh
resolution, writes are logged and dropped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from pidlens.application.services.classifier_registry import ClassifierRegistry, default_registry
from pidlens.application.services.dispatcher import Dispatcher
from pidlens.application.services.pid_resolver import PIDResolver
from pidlens.application.services.resolver_memo import ResolverMemo
from pidlens.config import PidLensConfig
from pidlens.core.abstractions.classifier import ClassifierContext, IdentifierClassifier
from pidlens.domain.errors import CacheError
from pidlens.domain.items import unique_items
from pidlens.domain.settings import DEFAULT_TTL_MS, SettingsInput, ttl_for
from pidlens.infrastructure.api_clients.cached_fetch import CachedFetcher
from pidlens.infrastructure.stores.entity_store import EntityRow, EntityStore, RelationRow
from pidlens.infrastructure.stores.response_cache_store import ResponseCacheStore
from pidlens.utils.logging_config import LogFiles, Logger, set_trace_id

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_key(value: Any) -> str:
    """Primitive cache key for ``value``; non-strings are serialized as sorted JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


class EntityCache:
    def __init__(
        self,
        store: Optional[EntityStore],
        dispatcher: Dispatcher,
        *,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        context: str = "cli",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.default_ttl_ms = default_ttl_ms
        self.context = context
        self._clock = clock or _utcnow

    @property
    def registry(self) -> ClassifierRegistry:
        return self.dispatcher.registry

    def _lookup(self, key: str) -> Optional[EntityRow]:
        if self.store is None:
            return None
        try:
            return self.store.get(key)
        except CacheError as e:
            logger.warning(f"Entity store unavailable, resolving {key!r} without cache: {e}")
            Logger.error(f"Lookup failed for {key}: {e}", file=LogFiles.ERROR)
            return None

    def _is_stale(self, row: EntityRow, ttl_ms: int) -> bool:
        if ttl_ms == 0:
            return True
        age_ms = (self._clock() - row.last_access).total_seconds() * 1000
        return age_ms > ttl_ms

    async def get_entity(self, value: Any, settings: SettingsInput = None) -> IdentifierClassifier:
        key = normalize_key(value)
        set_trace_id()
        settings = list(settings or [])

        refresh = False
        row = self._lookup(key)
        if row is not None:
            ttl_ms = ttl_for(settings, row.classifier_key, self.default_ttl_ms)
            if self._is_stale(row, ttl_ms):
                Logger.info(f"Expired {key} ({row.classifier_key}, ttl={ttl_ms}ms)", file=LogFiles.CACHE)
                self._forget_quietly(key)
                refresh = True
            elif row.classifier_key not in self.registry:
                logger.warning(f"Stored classifier {row.classifier_key!r} for {key!r} is not registered")
                self._forget_quietly(key)
            else:
                classifier = self.registry.create(row.classifier_key, value)
                self.dispatcher.attach_settings(classifier, settings)
                await classifier.resolve(row.last_data)
                await self.dispatcher.annotate(classifier)
                Logger.info(f"Cache hit for {key} ({row.classifier_key})", file=LogFiles.CACHE)
                return classifier

        classifier = await self.dispatcher.prepare(value, settings)
        if ttl_for(settings, classifier.settings_key(), self.default_ttl_ms) == 0:
            refresh = True
        await self.dispatcher.complete(classifier, fresh=refresh)
        await self.add_entity(classifier)
        return classifier

    async def add_entity(self, classifier: IdentifierClassifier) -> bool:
        """Persist the classifier row and its item relations. Returns True when a row was created."""
        if self.store is None:
            return False
        key = normalize_key(classifier.value)
        if classifier.error is not None:
            # failed resolutions are retried next time instead of being cached
            logger.info(f"Not caching {key!r}: {classifier.error}")
            return False
        try:
            created = self.store.add(
                key,
                classifier_key=classifier.settings_key(),
                context=self.context,
                last_data=classifier.data,
                last_access=self._clock(),
            )
            edges = [
                (item.title, str(item.value)) for item in unique_items(classifier.items) if item.value is not None
            ]
            self.store.add_relations(key, edges)
        except CacheError as e:
            logger.warning(f"Could not persist {key!r}: {e}")
            Logger.error(f"Persist failed for {key}: {e}", file=LogFiles.ERROR)
            return False
        return created

    def _forget_quietly(self, key: str) -> None:
        try:
            self.delete_entity(key)
        except CacheError as e:
            logger.warning(f"Could not delete expired entity {key!r}: {e}")

    def delete_entity(self, value: Any) -> None:
        if self.store is None:
            return
        self.store.delete(normalize_key(value))

    def list_relations(self, value: Any) -> List[RelationRow]:
        if self.store is None:
            return []
        return self.store.list_relations(normalize_key(value))

    def clear(self) -> None:
        if self.store is not None:
            self.store.clear()


@dataclass
class PidLensRuntime:
    """Everything one process needs to resolve identifiers."""

    config: PidLensConfig
    fetcher: CachedFetcher
    memo: ResolverMemo
    entity_cache: EntityCache

    async def close(self) -> None:
        await self.fetcher.close()
        if self.entity_cache.store is not None:
            self.entity_cache.store.close()
        if self.fetcher.response_cache is not None:
            self.fetcher.response_cache.close()


def build_runtime(config: Optional[PidLensConfig] = None) -> PidLensRuntime:
    config = config or PidLensConfig.from_env()
    response_cache = ResponseCacheStore(config.db_url) if config.http_cache_enabled else None
    fetcher = CachedFetcher(response_cache, cache_name=config.cache_name, timeout=config.http_timeout)
    memo = ResolverMemo()
    context = ClassifierContext(
        fetcher=fetcher,
        pid_resolver=PIDResolver(fetcher, memo, max_depth=config.max_depth),
    )
    cache = EntityCache(
        EntityStore(config.db_url),
        Dispatcher(default_registry(context)),
        default_ttl_ms=config.default_ttl_ms,
        context=config.context,
    )
    return PidLensRuntime(config=config, fetcher=fetcher, memo=memo, entity_cache=cache)
