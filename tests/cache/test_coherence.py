from __future__ import annotations

from datetime import date

from src.section_attendance.section_attendance.cache.backend import CacheError, InMemoryTTLCache
from src.section_attendance.section_attendance.cache.coherence import CacheCoherence
from src.section_attendance.section_attendance.cache.keys import CacheKey, SchoolDay, SectionDay
from tests.support import FakeClock

DAY = date(2025, 9, 7)
KEY = CacheKey.build("daily", {"grade_section_id": "sec-7a", "date": DAY}, role="teacher", actor_id="t-1")
SCOPES = [SectionDay("sec-7a", DAY)]


def _coherence(backend=None):
    backend = backend if backend is not None else InMemoryTTLCache(clock=FakeClock())
    return CacheCoherence(backend, ttl_seconds=60), backend


def test_miss_then_hit():
    coherence, _ = _coherence()
    calls = []

    def load():
        calls.append(1)
        return {"n": len(calls)}

    first = coherence.read_through(KEY, SCOPES, load)
    second = coherence.read_through(KEY, SCOPES, load)

    assert (first.status, second.status) == ("MISS", "HIT")
    assert second.value == {"n": 1}
    assert len(calls) == 1


def test_invalidation_while_loading_is_not_overwritten():
    coherence, backend = _coherence()

    def slow_load():
        # A write lands between the read of the store and the cache fill.
        coherence.invalidate_day("sec-7a", DAY)
        return {"stale": True}

    assert coherence.read_through(KEY, SCOPES, slow_load).value == {"stale": True}
    assert len(backend) == 0

    fresh = coherence.read_through(KEY, SCOPES, lambda: {"stale": False})
    assert not fresh.hit
    assert fresh.value == {"stale": False}


def test_invalidate_day_covers_section_and_school_reads():
    coherence, backend = _coherence()
    overview_key = CacheKey.build("grade-sections/daily", {"date": DAY}, role="admin", actor_id="a-1")
    other_section = CacheKey.build("daily", {"grade_section_id": "sec-7b", "date": DAY}, role="admin", actor_id="a-1")

    coherence.read_through(KEY, SCOPES, lambda: 1)
    coherence.read_through(overview_key, [SchoolDay(DAY)], lambda: 2)
    coherence.read_through(other_section, [SectionDay("sec-7b", DAY)], lambda: 3)

    assert coherence.invalidate_day("sec-7a", DAY) == 2
    assert coherence.read_through(other_section, [SectionDay("sec-7b", DAY)], lambda: 4).value == 3


class _FlakyBackend(InMemoryTTLCache):
    def __init__(self):
        super().__init__(clock=FakeClock())
        self.fail = True

    def get(self, key):
        if self.fail:
            raise CacheError("timeout")
        return super().get(key)

    def invalidate(self, scopes):
        if self.fail:
            raise CacheError("timeout")
        return super().invalidate(scopes)


def test_backend_errors_fall_through_to_loader():
    coherence, backend = _coherence(_FlakyBackend())

    assert coherence.read_through(KEY, SCOPES, lambda: "live").value == "live"
    assert coherence.invalidate_day("sec-7a", DAY) == 0

    backend.fail = False
    assert coherence.read_through(KEY, SCOPES, lambda: "again").status == "MISS"


def test_undecodable_entry_is_reloaded():
    coherence, backend = _coherence()
    backend.set(KEY.render(), "{not json", ttl=60, scopes=[s.token() for s in SCOPES], generations=(0,))

    read = coherence.read_through(KEY, SCOPES, lambda: {"ok": True})

    assert not read.hit
    assert read.value == {"ok": True}
