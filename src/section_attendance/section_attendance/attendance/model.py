from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional

from ..core.enums import ATTENDED_STATUSES, UNMARKED, AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one status for one student in one section on one day."""

    grade_section_id: str
    student_id: str
    attendance_date: date
    status: AttendanceStatus
    notes: Optional[str]
    marked_by: str
    marked_at: datetime


@dataclass(frozen=True)
class DailyRosterEntry:
    """Read-model: a roster student with the day's status, or "unmarked"."""

    student_id: str
    name: str
    status: str
    notes: Optional[str] = None
    marked_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "name": self.name,
            "status": self.status,
            "notes": self.notes,
            "marked_at": self.marked_at.isoformat() if self.marked_at else None,
        }


@dataclass(frozen=True)
class StatusCounts:
    """Per-status tallies for one section and day, restricted to the active roster."""

    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0

    @classmethod
    def tally(cls, total: int, statuses) -> "StatusCounts":
        counts = {s: 0 for s in AttendanceStatus}
        for s in statuses:
            counts[AttendanceStatus(s)] += 1
        return cls(
            total=int(total),
            present=counts[AttendanceStatus.PRESENT],
            absent=counts[AttendanceStatus.ABSENT],
            late=counts[AttendanceStatus.LATE],
            excused=counts[AttendanceStatus.EXCUSED],
        )

    @property
    def marked(self) -> int:
        return self.present + self.absent + self.late + self.excused

    @property
    def unmarked(self) -> int:
        return self.total - self.marked

    def as_mapping(self) -> Mapping[str, int]:
        return {
            AttendanceStatus.PRESENT.value: self.present,
            AttendanceStatus.ABSENT.value: self.absent,
            AttendanceStatus.LATE.value: self.late,
            AttendanceStatus.EXCUSED.value: self.excused,
            UNMARKED: self.unmarked,
        }


def attendance_rate(counts: StatusCounts) -> float:
    """Share of the roster that attended (present, late or excused), as a percentage."""

    if counts.total <= 0:
        return 0.0
    attended = sum(counts.as_mapping()[s.value] for s in ATTENDED_STATUSES)
    return round(attended / counts.total * 100, 2)


@dataclass(frozen=True)
class DailyStatistics:
    attendance_date: date
    counts: StatusCounts

    @property
    def attendance_rate(self) -> float:
        return attendance_rate(self.counts)

    def to_dict(self) -> dict:
        return {
            "date": self.attendance_date.isoformat(),
            "total": self.counts.total,
            **self.counts.as_mapping(),
            "attendance_rate": self.attendance_rate,
        }


@dataclass(frozen=True)
class SectionDailyOverview:
    """One row of the whole-school daily overview."""

    grade_section_id: str
    name: str
    counts: StatusCounts

    def to_dict(self) -> dict:
        return {
            "grade_section_id": self.grade_section_id,
            "name": self.name,
            "total": self.counts.total,
            **self.counts.as_mapping(),
            "attendance_rate": attendance_rate(self.counts),
        }


@dataclass(frozen=True)
class StudentHistoryEntry:
    attendance_date: date
    grade_section_id: str
    grade_section_name: str
    status: AttendanceStatus
    notes: Optional[str]
    marked_at: datetime

    def to_dict(self) -> dict:
        return {
            "date": self.attendance_date.isoformat(),
            "grade_section_id": self.grade_section_id,
            "grade_section_name": self.grade_section_name,
            "status": self.status.value,
            "notes": self.notes,
            "marked_at": self.marked_at.isoformat(),
        }


@dataclass(frozen=True)
class MarkRequest:
    """One entry of a bulk-mark body, as received (not yet validated)."""

    student_id: Optional[str]
    status: Optional[str]
    notes: Optional[str] = None


@dataclass(frozen=True)
class MarkError:
    student_id: Optional[str]
    reason: str

    def to_dict(self) -> dict:
        return {"student_id": self.student_id, "reason": self.reason}


@dataclass
class BulkMarkResult:
    marked: list[AttendanceRecord] = field(default_factory=list)
    errors: list[MarkError] = field(default_factory=list)

    @property
    def marked_count(self) -> int:
        return len(self.marked)

    def to_dict(self) -> dict:
        return {
            "marked_count": self.marked_count,
            "errors": [e.to_dict() for e in self.errors],
        }
