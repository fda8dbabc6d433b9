from __future__ import annotations

from datetime import date
from typing import Sequence

from ..auth.identity import Identity
from ..core.enums import UNMARKED
from ..grade_sections.repository import GradeSectionRepository
from .access import SectionAccessPolicy
from .model import DailyRosterEntry
from .repository import AttendanceRepository


class RosterView:
    """Daily view of a grade section: every enrolled student exactly once."""

    def __init__(
        self,
        grade_sections: GradeSectionRepository,
        attendance: AttendanceRepository,
        access: SectionAccessPolicy,
    ):
        self._grade_sections = grade_sections
        self._attendance = attendance
        self._access = access

    def daily_roster(self, grade_section_id: str, attendance_date: date, identity: Identity) -> list[DailyRosterEntry]:
        self._access.require_section(grade_section_id, identity)
        return self.build(grade_section_id, attendance_date)

    def build(self, grade_section_id: str, attendance_date: date) -> list[DailyRosterEntry]:
        """Left-join the active roster against the day's records."""

        roster = self._grade_sections.list_roster(grade_section_id)
        if not roster:
            return []

        records = {
            r.student_id: r
            for r in self._attendance.for_section_and_date(
                grade_section_id=grade_section_id, attendance_date=attendance_date
            )
        }

        entries: list[DailyRosterEntry] = []
        for student in roster:
            rec = records.get(student.student_id)
            entries.append(
                DailyRosterEntry(
                    student_id=student.student_id,
                    name=student.full_name,
                    status=rec.status.value if rec else UNMARKED,
                    notes=rec.notes if rec else None,
                    marked_at=rec.marked_at if rec else None,
                )
            )

        entries.sort(key=lambda e: (e.name.casefold(), e.student_id))
        return entries


def roster_statuses(entries: Sequence[DailyRosterEntry]) -> list[str]:
    return [e.status for e in entries if e.status != UNMARKED]
