"""
Process-lifetime memo for Handle resolution.

Three collections keyed by canonical ``prefix/suffix`` strings:
- resolved records (with the nesting depth they were resolved at)
- resolved type descriptors
- identifiers known to be unresolvable (negative cache)

One memo is shared by every resolver call of a process; tests build their own.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from pidlens.domain.pid import PID, PIDRecord, TypeDescriptor

PidKey = Union[PID, str]


def _key(pid: PidKey) -> str:
    return str(pid)


@dataclass
class MemoStats:
    record_hits: int = 0
    type_hits: int = 0
    negative_hits: int = 0


class ResolverMemo:
    """
    In-memory memo of records, type descriptors and unresolvable identifiers.

    Entries live for the lifetime of the memo unless ``max_age`` (seconds) is
    set, in which case they expire according to ``clock``.
    """

    def __init__(
        self,
        *,
        max_age: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_age = max_age
        self._clock = clock or time.monotonic
        self._records: Dict[str, Tuple[float, int, PIDRecord]] = {}
        self._types: Dict[str, Tuple[float, TypeDescriptor]] = {}
        self._unresolvable: Dict[str, float] = {}
        self.stats = MemoStats()

    def _fresh(self, stored_at: float) -> bool:
        if self.max_age is None:
            return True
        return self._clock() - stored_at <= self.max_age

    # records

    def get_record(self, pid: PidKey, min_depth: int = 0) -> Optional[PIDRecord]:
        """Return a memoized record resolved with at least ``min_depth`` nesting budget."""
        hit = self._records.get(_key(pid))
        if hit is None:
            return None
        stored_at, depth, record = hit
        if not self._fresh(stored_at):
            del self._records[_key(pid)]
            return None
        if depth < min_depth:
            return None
        self.stats.record_hits += 1
        return record

    def put_record(self, record: PIDRecord, depth: int = 0) -> None:
        key = _key(record.pid)
        self._unresolvable.pop(key, None)
        current = self._records.get(key)
        # never replace a deeper resolution with a shallower one
        if current is not None and current[1] > depth and self._fresh(current[0]):
            return
        self._records[key] = (self._clock(), depth, record)

    # types

    def get_type(self, pid: PidKey) -> Optional[TypeDescriptor]:
        hit = self._types.get(_key(pid))
        if hit is None:
            return None
        if not self._fresh(hit[0]):
            del self._types[_key(pid)]
            return None
        self.stats.type_hits += 1
        return hit[1]

    def put_type(self, descriptor: TypeDescriptor) -> None:
        self._types[_key(descriptor.pid)] = (self._clock(), descriptor)

    # negative cache

    def is_unresolvable(self, pid: PidKey) -> bool:
        stored_at = self._unresolvable.get(_key(pid))
        if stored_at is None:
            return False
        if not self._fresh(stored_at):
            del self._unresolvable[_key(pid)]
            return False
        self.stats.negative_hits += 1
        return True

    def mark_unresolvable(self, pid: PidKey) -> None:
        self._unresolvable[_key(pid)] = self._clock()

    def clear(self) -> None:
        self._records.clear()
        self._types.clear()
        self._unresolvable.clear()
        self.stats = MemoStats()
