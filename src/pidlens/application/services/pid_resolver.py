# src/pidlens/application/services/pid_resolver.py
"""
Handle/PID graph resolver.

Turns a ``prefix/suffix`` identifier into a ``PIDRecord``. Entries whose type
is itself a PID are resolved into ``TypeDescriptor``s by following the
``10320/loc`` location list of the type's own record: the ``json`` view is the
authoritative descriptor, any other view becomes the redirect URL.

Recursion is bounded by a depth budget and a set of visited canonical PID
strings passed down through every call. Inside ``fresh_fetches()`` the memo
is written but never read.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from bs4 import BeautifulSoup

from pidlens.application.ports.fetcher_port import MetadataFetcherPort, fresh_fetch_requested
from pidlens.application.services.resolver_memo import ResolverMemo
from pidlens.domain.errors import FetchError, ParseError
from pidlens.domain.pid import PID, EntryType, PIDRecord, RecordEntry, TypeDescriptor
from pidlens.utils.logging_config import LogFiles, Logger

logger = logging.getLogger(__name__)

HANDLE_API_URL = "https://hdl.handle.net/api/handles/{prefix}/{suffix}"
DEFAULT_MAX_DEPTH = 2


@dataclass(frozen=True)
class Location:
    href: str
    view: str = ""
    weight: Optional[int] = None


def parse_locations(xml: str) -> List[Location]:
    """Parse a ``<locations><location href=... view=... weight=.../></locations>`` list."""
    if not xml or "<location" not in xml:
        return []
    soup = BeautifulSoup(xml, "html.parser")
    locations: List[Location] = []
    for tag in soup.find_all("location"):
        href = (tag.get("href") or "").strip()
        if not href:
            continue
        weight_raw = tag.get("weight")
        try:
            weight = int(weight_raw) if weight_raw is not None else None
        except ValueError:
            weight = None
        locations.append(Location(href=href, view=(tag.get("view") or "").strip().lower(), weight=weight))
    return locations


def parse_timestamp(raw: Any) -> Optional[int]:
    """ISO-8601 timestamp -> epoch milliseconds."""
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return int(raw)
    text = str(raw).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return int(datetime.fromisoformat(text).timestamp() * 1000)
    except ValueError:
        return None


class PIDResolver:
    """Resolve Handle records and the type descriptors their entries point at."""

    def __init__(
        self,
        fetcher: MetadataFetcherPort,
        memo: Optional[ResolverMemo] = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.fetcher = fetcher
        self.memo = memo if memo is not None else ResolverMemo()
        self.max_depth = max_depth

    def is_resolvable(self, pid: PID) -> bool:
        return pid.is_resolvable_prefix() and not self.memo.is_unresolvable(pid)

    async def resolve(
        self,
        pid: PID,
        depth: Optional[int] = None,
        visited: Optional[Iterable[str]] = None,
    ) -> Optional[PIDRecord]:
        """
        Resolve ``pid`` into a record.

        Args:
            pid: identifier to resolve
            depth: remaining nesting budget; entry types are only resolved while it is > 0
            visited: canonical strings of PIDs already on the resolution path

        Returns:
            The record, or None when the PID is (or just turned out to be) unresolvable.
        """
        depth = self.max_depth if depth is None else depth
        if not fresh_fetch_requested():
            if self.memo.is_unresolvable(pid):
                return None
            cached = self.memo.get_record(pid, min_depth=depth)
            if cached is not None:
                return cached

        path = frozenset(visited or ()) | {pid.key}
        url = HANDLE_API_URL.format(prefix=pid.prefix, suffix=pid.suffix)
        try:
            payload = await self.fetcher.fetch_json(url)
        except (FetchError, ParseError) as e:
            logger.warning(f"Could not resolve {pid}: {e}")
            Logger.warning(f"Marking {pid} unresolvable: {e}", file=LogFiles.RESOLVER)
            self.memo.mark_unresolvable(pid)
            return None

        raw_values = payload.get("values") if isinstance(payload, dict) else None
        if not isinstance(raw_values, list):
            logger.warning(f"Handle response for {pid} has no values list")
            self.memo.mark_unresolvable(pid)
            return None

        types = await self._resolve_entry_types(raw_values, depth, path)
        entries = [self._to_entry(raw, types) for raw in raw_values if isinstance(raw, dict)]
        record = PIDRecord(pid=pid, entries=entries)
        self.memo.put_record(record, depth)
        Logger.info(f"Resolved {pid} ({len(entries)} entries, depth {depth})", file=LogFiles.RESOLVER)
        return record

    async def _resolve_entry_types(
        self, raw_values: List[Any], depth: int, path: FrozenSet[str]
    ) -> Dict[str, Optional[TypeDescriptor]]:
        """Resolve every distinct nested type PID of one record concurrently."""
        if depth <= 0:
            return {}
        pending: Dict[str, PID] = {}
        for raw in raw_values:
            type_text = raw.get("type") if isinstance(raw, dict) else None
            if not PID.is_pid(type_text) or type_text in path:
                continue
            pending.setdefault(type_text, PID.from_string(type_text))
        if not pending:
            return {}
        keys = list(pending)
        results = await asyncio.gather(
            *(self.resolve_type(pending[k], depth=depth - 1, visited=path) for k in keys)
        )
        return dict(zip(keys, results))

    @staticmethod
    def _to_entry(raw: Dict[str, Any], types: Dict[str, Optional[TypeDescriptor]]) -> RecordEntry:
        type_text = raw.get("type")
        entry_type: EntryType
        if PID.is_pid(type_text):
            entry_type = types.get(type_text) or PID.from_string(type_text)
        else:
            entry_type = "" if type_text is None else str(type_text)
        data = raw.get("data")
        if not isinstance(data, dict):
            data = {"format": "string", "value": data}
        ttl = raw.get("ttl")
        return RecordEntry(
            index=int(raw.get("index") or 0),
            type=entry_type,
            data=data,
            ttl=ttl if isinstance(ttl, int) else None,
            timestamp=parse_timestamp(raw.get("timestamp")),
        )

    async def resolve_type(
        self,
        pid: PID,
        depth: int = 0,
        visited: Optional[Iterable[str]] = None,
    ) -> Optional[TypeDescriptor]:
        """
        Resolve a type PID into a descriptor via the location list of its record.

        Returns None when the type has no ``json`` location or cannot be resolved;
        the calling entry then keeps the raw PID as its type.
        """
        if fresh_fetch_requested():
            if not pid.is_resolvable_prefix():
                return None
        else:
            cached = self.memo.get_type(pid)
            if cached is not None:
                return cached
            if not self.is_resolvable(pid):
                return None

        record = await self.resolve(pid, depth=depth, visited=visited)
        if record is None:
            return None

        name: Optional[str] = None
        description = ""
        redirect_url = ""
        registry_payload: Dict[str, Any] = {}
        regex: Optional[str] = None
        found_json = False

        for entry in record.entries:
            if not entry.is_location_entry():
                continue
            # later locations overwrite earlier ones field by field
            for location in parse_locations(entry.value):
                if location.view == "json":
                    try:
                        body = await self.fetcher.fetch_json(location.href)
                    except (FetchError, ParseError) as e:
                        logger.warning(f"Type registry lookup failed for {pid} at {location.href}: {e}")
                        continue
                    if not isinstance(body, dict):
                        continue
                    found_json = True
                    name = body.get("name") or str(pid)
                    description = body.get("description") or ""
                    registry_payload = body
                    regex = body.get("regex")
                else:
                    redirect_url = location.href

        if not found_json:
            return None
        descriptor = TypeDescriptor(
            pid=pid,
            name=name or str(pid),
            description=description,
            redirect_url=redirect_url,
            registry_payload=registry_payload,
            regex=regex if isinstance(regex, str) else None,
        )
        self.memo.put_type(descriptor)
        return descriptor
