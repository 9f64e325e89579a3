from __future__ import annotations

from pidlens.application.services.resolver_memo import ResolverMemo
from pidlens.domain.pid import PID, PIDRecord, RecordEntry, TypeDescriptor


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _record(pid: PID, marker: str) -> PIDRecord:
    return PIDRecord(pid=pid, entries=[RecordEntry(1, "URL", {"value": marker})])


def test_record_lookup_respects_depth():
    memo = ResolverMemo()
    pid = PID("21.T1", "obj")
    memo.put_record(_record(pid, "shallow"), depth=0)

    assert memo.get_record(pid) is not None
    assert memo.get_record(pid, min_depth=1) is None
    assert memo.get_record("21.T1/obj").entries[0].value == "shallow"


def test_shallower_record_does_not_replace_deeper_one():
    memo = ResolverMemo()
    pid = PID("21.T1", "obj")
    memo.put_record(_record(pid, "deep"), depth=2)
    memo.put_record(_record(pid, "shallow"), depth=0)

    assert memo.get_record(pid, min_depth=2).entries[0].value == "deep"


def test_types_and_negative_cache():
    memo = ResolverMemo()
    descriptor = TypeDescriptor(pid=PID("21.T1", "type"), name="name")
    memo.put_type(descriptor)
    memo.mark_unresolvable(PID("21.T1", "gone"))

    assert memo.get_type("21.T1/type") is descriptor
    assert memo.is_unresolvable(PID("21.T1", "gone"))
    assert not memo.is_unresolvable(PID("21.T1", "type"))
    assert memo.stats.type_hits == 1
    assert memo.stats.negative_hits == 1

    memo.clear()
    assert memo.get_type("21.T1/type") is None
    assert not memo.is_unresolvable("21.T1/gone")


def test_entries_expire_with_max_age():
    clock = _Clock()
    memo = ResolverMemo(max_age=10, clock=clock)
    pid = PID("21.T1", "obj")
    memo.put_record(_record(pid, "v"))
    memo.mark_unresolvable("21.T1/gone")

    clock.now = 5
    assert memo.get_record(pid) is not None
    clock.now = 11
    assert memo.get_record(pid) is None
    assert not memo.is_unresolvable("21.T1/gone")


def test_storing_a_record_clears_its_unresolvable_mark():
    memo = ResolverMemo()
    pid = PID("21.T1", "flaky")
    memo.mark_unresolvable(pid)

    memo.put_record(_record(pid, "back"), depth=0)

    assert not memo.is_unresolvable(pid)
    assert memo.get_record(pid).entries[0].value == "back"
