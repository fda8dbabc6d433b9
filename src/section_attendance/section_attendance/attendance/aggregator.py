from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Sequence

from ..auth.identity import Identity
from ..common.datetime_utils import iter_days
from ..grade_sections.repository import GradeSectionRepository
from .access import SectionAccessPolicy
from .model import DailyRosterEntry, DailyStatistics, SectionDailyOverview, StatusCounts, StudentHistoryEntry
from .repository import AttendanceRepository
from .roster import roster_statuses


class Aggregator:
    """Per-day and ranged statistics, using the active roster as the denominator."""

    def __init__(
        self,
        grade_sections: GradeSectionRepository,
        attendance: AttendanceRepository,
        access: SectionAccessPolicy,
    ):
        self._grade_sections = grade_sections
        self._attendance = attendance
        self._access = access

    @staticmethod
    def day_stats(attendance_date: date, entries: Sequence[DailyRosterEntry]) -> DailyStatistics:
        return DailyStatistics(attendance_date, StatusCounts.tally(len(entries), roster_statuses(entries)))

    def range_stats(self, grade_section_id: str, date_from: date, date_to: date) -> list[DailyStatistics]:
        """One entry per calendar day, newest first, including days nobody marked."""

        roster_ids = {s.student_id for s in self._grade_sections.list_roster(grade_section_id)}
        by_day: dict[date, list[str]] = defaultdict(list)
        for rec in self._attendance.range_query(
            grade_section_id=grade_section_id, date_from=date_from, date_to=date_to
        ):
            if rec.student_id in roster_ids:
                by_day[rec.attendance_date].append(rec.status)

        return [
            DailyStatistics(day, StatusCounts.tally(len(roster_ids), by_day.get(day, ())))
            for day in reversed(list(iter_days(date_from, date_to)))
        ]

    def student_history(self, student_id: str, date_from: date, date_to: date) -> list[StudentHistoryEntry]:
        """Only days with a record; unmarked days are omitted."""

        records = self._attendance.by_student(student_id=student_id, date_from=date_from, date_to=date_to)
        names = self._grade_sections.names_by_id([r.grade_section_id for r in records]) if records else {}
        return [
            StudentHistoryEntry(
                attendance_date=r.attendance_date,
                grade_section_id=r.grade_section_id,
                grade_section_name=names.get(r.grade_section_id, ""),
                status=r.status,
                notes=r.notes,
                marked_at=r.marked_at,
            )
            for r in records
        ]

    def school_daily_overview(self, attendance_date: date, identity: Identity) -> list[SectionDailyOverview]:
        """Every section visible to the caller, counted in one batched query."""

        sections = self._access.visible_sections(identity)
        if not sections:
            return []

        counts = self._attendance.daily_status_counts(
            attendance_date=attendance_date,
            grade_section_ids=[s.grade_section_id for s in sections],
        )
        rows = [
            SectionDailyOverview(
                grade_section_id=s.grade_section_id,
                name=s.name,
                counts=counts.get(s.grade_section_id) or StatusCounts(),
            )
            for s in sections
        ]
        rows.sort(key=lambda r: (r.name.casefold(), r.grade_section_id))
        return rows
