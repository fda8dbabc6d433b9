from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Sequence

from src.section_attendance.section_attendance.attendance.model import AttendanceRecord, StatusCounts
from src.section_attendance.section_attendance.auth.identity import Identity
from src.section_attendance.section_attendance.core.enums import AttendanceStatus, Role
from src.section_attendance.section_attendance.core.exceptions import DependencyError
from src.section_attendance.section_attendance.grade_sections.model import GradeSection, RosterStudent
from src.section_attendance.section_attendance.school_settings.model import AttendanceConfig

JWT_SECRET = "test-jwt-secret"

SECTION_A = "sec-7a"
SECTION_B = "sec-7b"
EMPTY_SECTION = "sec-empty"

ADMIN = Identity(user_id="admin-1", role=Role.ADMIN)
TEACHER_A = Identity(user_id="teacher-a", role=Role.TEACHER)
TEACHER_B = Identity(user_id="teacher-b", role=Role.TEACHER)
STUDENT = Identity(user_id="s-01", role=Role.STUDENT)
PARENT = Identity(user_id="parent-1", role=Role.PARENT)

DAY = date(2025, 9, 7)
MARKED_AT = datetime(2025, 9, 7, 8, 15)

# Deliberately unsorted and mixed case.
SECTION_A_NAMES = [
    "olivia", "Ben", "amelia", "Noah", "charlotte", "Liam", "emma", "Jack",
    "isla", "George", "mia", "Harry", "ava", "Oscar", "sophie",
]
SECTION_A_STUDENTS = [RosterStudent(student_id=f"s-{i + 1:02d}", full_name=n) for i, n in enumerate(SECTION_A_NAMES)]
SECTION_B_STUDENTS = [
    RosterStudent(student_id="s-21", full_name="Zoe"),
    RosterStudent(student_id="s-22", full_name="Yusuf"),
    RosterStudent(student_id="s-23", full_name="Xavier"),
]

class InMemoryGradeSections:
    def __init__(self):
        self.sections: dict[str, GradeSection] = {}
        self.rosters: dict[str, list[RosterStudent]] = {}

    def add(self, grade_section_id: str, name: str, *, teacher_id: Optional[str], students=(), grade_level=7, section="A", is_active=True):
        self.sections[grade_section_id] = GradeSection(
            grade_section_id=grade_section_id,
            name=name,
            grade_level=grade_level,
            section=section,
            teacher_id=teacher_id,
            is_active=is_active,
        )
        self.rosters[grade_section_id] = list(students)

    def get_by_id(self, grade_section_id: str) -> Optional[GradeSection]:
        return self.sections.get(grade_section_id)

    def list_active(self, *, teacher_id: Optional[str] = None) -> Sequence[GradeSection]:
        items = [
            s for s in self.sections.values()
            if s.is_active and (teacher_id is None or s.teacher_id == teacher_id)
        ]
        items.sort(key=lambda s: (s.grade_level, s.section))
        return items

    def list_roster(self, grade_section_id: str) -> Sequence[RosterStudent]:
        return list(self.rosters.get(grade_section_id, []))

    def active_section_ids_for_student(self, student_id: str) -> Sequence[str]:
        return [sid for sid, roster in self.rosters.items() if any(s.student_id == student_id for s in roster)]

    def names_by_id(self, grade_section_ids: Sequence[str]) -> Mapping[str, str]:
        return {sid: self.sections[sid].name for sid in grade_section_ids if sid in self.sections}

class InMemoryAttendance:
    def __init__(self, grade_sections: InMemoryGradeSections):
        self._grade_sections = grade_sections
        self.rows: dict[tuple[str, str, date], AttendanceRecord] = {}
        self.upsert_calls = 0
        self.count_queries = 0
        self.fail_on_upsert: Optional[int] = None

    def upsert(self, *, grade_section_id, student_id, attendance_date, status, notes, marked_by, marked_at) -> AttendanceRecord:
        self.upsert_calls += 1
        if self.fail_on_upsert is not None and self.upsert_calls >= self.fail_on_upsert:
            raise DependencyError("Attendance store query failed")
        rec = AttendanceRecord(
            grade_section_id=grade_section_id,
            student_id=student_id,
            attendance_date=attendance_date,
            status=AttendanceStatus(status),
            notes=notes,
            marked_by=marked_by,
            marked_at=marked_at,
        )
        self.rows[(grade_section_id, student_id, attendance_date)] = rec
        return rec

    def delete_all(self, *, grade_section_id, attendance_date) -> int:
        doomed = [k for k in self.rows if k[0] == grade_section_id and k[2] == attendance_date]
        for k in doomed:
            del self.rows[k]
        return len(doomed)

    def for_section_and_date(self, *, grade_section_id, attendance_date):
        return [r for k, r in self.rows.items() if k[0] == grade_section_id and k[2] == attendance_date]

    def range_query(self, *, grade_section_id, date_from, date_to):
        items = [r for k, r in self.rows.items() if k[0] == grade_section_id and date_from <= k[2] <= date_to]
        return sorted(items, key=lambda r: r.attendance_date)

    def by_student(self, *, student_id, date_from, date_to):
        items = [r for k, r in self.rows.items() if k[1] == student_id and date_from <= k[2] <= date_to]
        return sorted(items, key=lambda r: (r.attendance_date, r.grade_section_id), reverse=True)

    def daily_status_counts(self, *, attendance_date, grade_section_ids):
        self.count_queries += 1
        out = {}
        for sid in grade_section_ids:
            roster = {s.student_id for s in self._grade_sections.list_roster(sid)}
            if not roster:
                continue
            statuses = [
                r.status for k, r in self.rows.items()
                if k[0] == sid and k[2] == attendance_date and k[1] in roster
            ]
            out[sid] = StatusCounts.tally(len(roster), statuses)
        return out

class InMemorySettings:
    def __init__(self):
        self.config: Optional[AttendanceConfig] = None
        self.saved_by: Optional[str] = None

    def get_attendance_config(self) -> Optional[AttendanceConfig]:
        return self.config

    def save_attendance_config(self, config, *, updated_by, updated_at) -> None:
        self.config = config
        self.saved_by = updated_by

class RecordingNotifier:
    def __init__(self):
        self.calls: list[tuple] = []

    def notify(self, grade_section_id, attendance_date, student_ids, marked_by) -> None:
        self.calls.append((grade_section_id, attendance_date, list(student_ids), marked_by))

class RecordingTasks:
    """Runs submitted work inline so tests can observe it."""

    def __init__(self):
        self.submitted: list[tuple] = []

    def submit(self, fn, *args):
        self.submitted.append((fn, args))
        fn(*args)

class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def mark_body(records, *, grade_section_id=SECTION_A, day=DAY) -> dict:
    return {"grade_section_id": grade_section_id, "date": day.isoformat(), "attendance_records": records}


def scenario_b_records() -> list[dict]:
    """12 present, 2 absent, 1 late for the whole of section A."""

    statuses = ["present"] * 12 + ["absent"] * 2 + ["late"]
    return [{"student_id": s.student_id, "status": st} for s, st in zip(SECTION_A_STUDENTS, statuses)]
