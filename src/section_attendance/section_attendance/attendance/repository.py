from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, StatusCounts


class AttendanceRepository(Protocol):
    """Persistence contract for daily attendance.

    At most one row exists per (grade_section_id, student_id, attendance_date);
    a repeat upsert overwrites it (last writer wins). Reads return stored
    statuses only: deriving "unmarked" is the roster's job.
    """

    def upsert(
        self,
        *,
        grade_section_id: str,
        student_id: str,
        attendance_date: date,
        status: AttendanceStatus,
        notes: Optional[str],
        marked_by: str,
        marked_at: datetime,
    ) -> AttendanceRecord:
        raise NotImplementedError

    def delete_all(self, *, grade_section_id: str, attendance_date: date) -> int:
        raise NotImplementedError

    def for_section_and_date(self, *, grade_section_id: str, attendance_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def range_query(self, *, grade_section_id: str, date_from: date, date_to: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def by_student(self, *, student_id: str, date_from: date, date_to: date) -> Sequence[AttendanceRecord]:
        """Records for one student across sections, most recent first."""

        raise NotImplementedError

    def daily_status_counts(
        self, *, attendance_date: date, grade_section_ids: Sequence[str]
    ) -> Mapping[str, StatusCounts]:
        """Roster-joined counts for many sections in one query.

        Sections with no active enrollment may be absent from the result.
        """

        raise NotImplementedError
