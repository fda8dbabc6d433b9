from __future__ import annotations

from datetime import timedelta

from src.section_attendance.section_attendance.cache.backend import CacheError
from src.section_attendance.section_attendance.container import wire
from src.section_attendance.section_attendance.core.enums import AttendanceStatus
from tests.support import (
    ADMIN,
    DAY,
    MARKED_AT,
    SECTION_A,
    SECTION_B,
    STUDENT,
    TEACHER_A,
    TEACHER_B,
    mark_body,
    scenario_b_records,
)


def test_repeat_read_is_served_from_cache(service, attendance_repo):
    first = service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())
    # Written behind the service's back, so nothing invalidates.
    attendance_repo.upsert(
        grade_section_id=SECTION_A,
        student_id="s-01",
        attendance_date=DAY,
        status=AttendanceStatus.PRESENT,
        notes=None,
        marked_by=TEACHER_A.user_id,
        marked_at=MARKED_AT,
    )
    second = service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())

    assert (first.status, second.status) == ("MISS", "HIT")
    assert second.value == first.value


def test_read_after_write_sees_the_write(service):
    service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())
    service.school_overview(ADMIN, DAY.isoformat())
    service.range_stats(TEACHER_A, SECTION_A, (DAY - timedelta(days=2)).isoformat(), DAY.isoformat())

    service.bulk_mark(TEACHER_A, mark_body(scenario_b_records()))

    daily = service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())
    overview = service.school_overview(ADMIN, DAY.isoformat())
    stats = service.range_stats(TEACHER_A, SECTION_A, (DAY - timedelta(days=2)).isoformat(), DAY.isoformat())

    assert not daily.hit and daily.value["statistics"]["present"] == 12
    assert not overview.hit
    assert {r["grade_section_id"]: r["present"] for r in overview.value["grade_sections"]}[SECTION_A] == 12
    assert not stats.hit and stats.value["statistics"][0]["present"] == 12


def test_write_invalidates_every_callers_copy(service):
    service.school_overview(ADMIN, DAY.isoformat())
    service.school_overview(TEACHER_B, DAY.isoformat())

    service.bulk_mark(TEACHER_A, mark_body([{"student_id": "s-01", "status": "present"}]))

    assert not service.school_overview(ADMIN, DAY.isoformat()).hit
    # Teacher B cannot see section A but the school-wide day was still dropped.
    assert not service.school_overview(TEACHER_B, DAY.isoformat()).hit


def test_write_leaves_unrelated_entries_cached(service):
    service.daily_view(TEACHER_B, SECTION_B, DAY.isoformat())
    service.daily_view(TEACHER_A, SECTION_A, (DAY - timedelta(days=1)).isoformat())

    service.bulk_mark(TEACHER_A, mark_body(scenario_b_records()))

    assert service.daily_view(TEACHER_B, SECTION_B, DAY.isoformat()).hit
    assert service.daily_view(TEACHER_A, SECTION_A, (DAY - timedelta(days=1)).isoformat()).hit


def test_history_is_invalidated_by_a_write_in_its_window(service):
    window = ((DAY - timedelta(days=3)).isoformat(), DAY.isoformat())
    assert service.student_history(STUDENT, "s-01", *window).value["history"] == []

    service.bulk_mark(TEACHER_A, mark_body([{"student_id": "s-01", "status": "late"}]))

    read = service.student_history(STUDENT, "s-01", *window)
    assert not read.hit
    assert [h["status"] for h in read.value["history"]] == ["late"]


def test_reset_invalidates(service):
    service.bulk_mark(TEACHER_A, mark_body(scenario_b_records()))
    service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())

    service.reset(ADMIN, {"grade_section_id": SECTION_A, "date": DAY.isoformat()})

    read = service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())
    assert not read.hit
    assert read.value["statistics"]["unmarked"] == 15


def test_entries_expire_after_ttl(service, cache_clock):
    service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())
    cache_clock.advance(59)
    assert service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat()).hit

    cache_clock.advance(2)
    assert not service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat()).hit


def test_callers_do_not_share_entries(service):
    service.daily_view(ADMIN, SECTION_A, DAY.isoformat())

    assert not service.daily_view(TEACHER_A, SECTION_A, DAY.isoformat()).hit


class _BrokenCache:
    def get(self, key):
        raise CacheError("down")

    def generations(self, scopes):
        raise CacheError("down")

    def set(self, key, value, *, ttl, scopes, generations):
        raise CacheError("down")

    def invalidate(self, scopes):
        raise CacheError("down")

    def clear(self):
        raise CacheError("down")


def test_unavailable_cache_falls_through_to_the_store(grade_sections, attendance_repo, settings_repo, token_decoder, notifier, tasks):
    container = wire(
        grade_sections_repo=grade_sections,
        attendance_repo=attendance_repo,
        settings_repo=settings_repo,
        cache_backend=_BrokenCache(),
        token_decoder=token_decoder,
        notifier=notifier,
        tasks=tasks,
    )
    svc = container.attendance_service

    assert not svc.daily_view(TEACHER_A, SECTION_A, DAY.isoformat()).hit
    outcome = svc.bulk_mark(TEACHER_A, mark_body(scenario_b_records()))
    assert outcome.payload["marked_count"] == 15

    read = svc.daily_view(TEACHER_A, SECTION_A, DAY.isoformat())
    assert not read.hit
    assert read.value["statistics"]["present"] == 12
