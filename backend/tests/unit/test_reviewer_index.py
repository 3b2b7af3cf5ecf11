from datetime import datetime, timedelta, timezone
from threading import Barrier, Thread

import pytest

from reviewguard.models.context import ReviewAssignment
from reviewguard.models.workflow import ReviewStatus
from reviewguard.services.reviewer_index import (
    ReviewerIndexAllocator,
    ReviewerIndexStore,
    letter_for,
    reviewer_pseudonym,
)

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def _assignment(rid: str, minutes: int) -> ReviewAssignment:
    return ReviewAssignment(reviewer_id=rid, status=ReviewStatus.ACCEPTED, assigned_at=T0 + timedelta(minutes=minutes))


class _Loader:
    def __init__(self, rows):
        self.rows = list(rows)
        self.calls = 0

    def __call__(self, manuscript_id):
        self.calls += 1
        return list(self.rows)


def test_letter_for_maps_ordinals_to_letters():
    assert letter_for(1) == "A"
    assert letter_for(2) == "B"
    assert letter_for(26) == "Z"
    assert letter_for(27) == "AA"
    assert reviewer_pseudonym(3) == "Reviewer C"
    with pytest.raises(ValueError):
        letter_for(0)


def test_ordinals_follow_assigned_at_order():
    # loader 返回乱序，分配器仍按 assigned_at 升序编号
    loader = _Loader([_assignment("r3", 30), _assignment("r1", 10), _assignment("r2", 20)])
    allocator = ReviewerIndexAllocator(loader)

    assert [allocator.index_of(r, "m1") for r in ("r1", "r2", "r3")] == [1, 2, 3]
    assert [allocator.pseudonym_for(r, "m1") for r in ("r1", "r2", "r3")] == [
        "Reviewer A",
        "Reviewer B",
        "Reviewer C",
    ]


def test_cached_ordinals_are_stable_and_not_requeried():
    loader = _Loader([_assignment("r1", 1), _assignment("r2", 2)])
    allocator = ReviewerIndexAllocator(loader)

    first = allocator.index_of("r2", "m1")
    second = allocator.index_of("r2", "m1")
    assert first == second == 2
    allocator.index_of("r1", "m1")
    assert loader.calls == 1


def test_reviewer_unknown_at_load_time_is_appended():
    loader = _Loader([_assignment("r1", 10), _assignment("r2", 20)])
    allocator = ReviewerIndexAllocator(loader)
    assert allocator.index_of("r1", "m1") == 1

    # 新审稿人 assigned_at 更早，但缓存已填充：追加到末尾，不重排
    loader.rows.insert(0, _assignment("r0", 0))
    assert allocator.index_of("r0", "m1") == 3
    assert allocator.index_of("r1", "m1") == 1
    assert allocator.index_of("r2", "m1") == 2
    assert loader.calls == 1


def test_invalidate_single_manuscript_reloads_and_bumps_version():
    loader = _Loader([_assignment("r1", 10), _assignment("r2", 20)])
    allocator = ReviewerIndexAllocator(loader)
    allocator.index_of("r1", "m1")
    allocator.index_of("r1", "m2")
    assert allocator.version("m1") == 0

    loader.rows.insert(0, _assignment("r0", 0))
    allocator.invalidate("m1")

    assert allocator.version("m1") == 1
    assert allocator.version("m2") == 0
    assert allocator.index_of("r0", "m1") == 1
    assert allocator.index_of("r1", "m1") == 2
    # m2 未失效，仍是旧序号
    assert allocator.index_of("r1", "m2") == 1


def test_invalidate_all_clears_every_manuscript():
    loader = _Loader([_assignment("r1", 10)])
    allocator = ReviewerIndexAllocator(loader)
    allocator.index_of("r1", "m1")
    allocator.index_of("r1", "m2")
    calls_before = loader.calls

    allocator.invalidate()

    assert allocator.version("m1") == 1
    assert allocator.version("m2") == 1
    allocator.index_of("r1", "m1")
    allocator.index_of("r1", "m2")
    assert loader.calls == calls_before + 2


def test_missing_assigned_at_sorts_last_and_duplicates_ignored():
    rows = [
        ReviewAssignment(reviewer_id="late", status=ReviewStatus.PENDING, assigned_at=None),
        _assignment("r1", 5),
        _assignment("r1", 50),
        ReviewAssignment(reviewer_id="naive", status=ReviewStatus.PENDING, assigned_at=datetime(2026, 1, 5, 9, 10)),
    ]
    allocator = ReviewerIndexAllocator(_Loader(rows))
    assert allocator.index_of("r1", "m1") == 1
    assert allocator.index_of("naive", "m1") == 2
    assert allocator.index_of("late", "m1") == 3


def test_store_injection():
    store = ReviewerIndexStore()
    allocator = ReviewerIndexAllocator(_Loader([_assignment("r1", 1)]), store=store)
    allocator.index_of("r1", "m1")
    assert allocator.store is store
    assert store.snapshot("m1") == {"r1": 1}


def test_appended_pseudonyms_survive_many_other_manuscripts():
    loader = _Loader([_assignment("rA", 1), _assignment("rC", 3)])
    allocator = ReviewerIndexAllocator(loader)
    assert allocator.pseudonym_for("rA", "m-target") == "Reviewer A"
    assert allocator.pseudonym_for("rC", "m-target") == "Reviewer B"

    # rB 的 assigned_at 在 rA 与 rC 之间，但缓存已填充：追加为 C
    loader.rows.insert(1, _assignment("rB", 2))
    assert allocator.pseudonym_for("rB", "m-target") == "Reviewer C"

    for i in range(5000):
        allocator.index_of("rA", f"m-other-{i}")

    assert {r: allocator.pseudonym_for(r, "m-target") for r in ("rA", "rB", "rC")} == {
        "rA": "Reviewer A",
        "rB": "Reviewer C",
        "rC": "Reviewer B",
    }
    assert allocator.version("m-target") == 0


def test_unloaded_manuscript_is_never_numbered_in_request_order():
    class _DropAfterFirstInstall(ReviewerIndexStore):
        dropped = False

        def allocate(self, manuscript_id, reviewer_id, loaded=None):
            ordinal = super().allocate(manuscript_id, reviewer_id, loaded)
            if loaded is not None and not self.dropped:
                self.dropped = True
                self.drop(manuscript_id)
            return ordinal

    loader = _Loader([_assignment("r1", 10), _assignment("r2", 20), _assignment("r3", 30)])
    allocator = ReviewerIndexAllocator(loader, store=_DropAfterFirstInstall())

    assert [allocator.index_of(r, "m1") for r in ("r3", "r1", "r2")] == [3, 1, 2]
    assert allocator.store.snapshot("m1") == {"r1": 1, "r2": 2, "r3": 3}
    assert loader.calls == 2


def test_invalidation_during_load_keeps_assigned_at_order():
    allocator = None
    rows = [_assignment("r1", 10), _assignment("r2", 20), _assignment("r3", 30)]

    def _loader(manuscript_id):
        allocator.invalidate(manuscript_id)
        return list(rows)

    allocator = ReviewerIndexAllocator(_loader)
    assert [allocator.index_of(r, "m1") for r in ("r3", "r1", "r2")] == [3, 1, 2]
    assert allocator.store.snapshot("m1") == {"r1": 1, "r2": 2, "r3": 3}

def test_concurrent_first_population_agrees():
    loader = _Loader([_assignment(f"r{i}", i) for i in range(1, 6)])
    allocator = ReviewerIndexAllocator(loader)
    barrier = Barrier(4)
    results: list[list[int]] = []

    def _worker():
        barrier.wait()
        results.append([allocator.index_of(f"r{i}", "m1") for i in range(1, 6)])

    threads = [Thread(target=_worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [[1, 2, 3, 4, 5]] * 4
