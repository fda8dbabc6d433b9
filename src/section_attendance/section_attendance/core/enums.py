from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role resolved from the bearer token."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class AttendanceStatus(str, Enum):
    """Statuses that can be persisted for a student on a day."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


# Never stored: a roster student without a row for the day is unmarked.
UNMARKED = "unmarked"

# Statuses that count towards the attendance rate.
ATTENDED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.EXCUSED})
