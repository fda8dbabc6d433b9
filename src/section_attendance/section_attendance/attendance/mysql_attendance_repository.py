from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause
from .model import AttendanceRecord, StatusCounts
from .repository import AttendanceRepository

_COLUMNS = "grade_section_id, student_id, attendance_date, status, notes, marked_by, marked_at"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        grade_section_id=str(r["grade_section_id"]),
        student_id=str(r["student_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        notes=r.get("notes"),
        marked_by=str(r["marked_by"]),
        marked_at=r["marked_at"],
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(grade_section_id, student_id, attendance_date, status, notes, marked_by, marked_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status),
                    notes=VALUES(notes),
                    marked_by=VALUES(marked_by),
                    marked_at=VALUES(marked_at)
                """,
                (grade_section_id, student_id, attendance_date, status.value, notes, marked_by, marked_at),
            )
        return AttendanceRecord(
            grade_section_id=grade_section_id,
            student_id=student_id,
            attendance_date=attendance_date,
            status=status,
            notes=notes,
            marked_by=marked_by,
            marked_at=marked_at,
        )

    def delete_all(self, *, grade_section_id: str, attendance_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance WHERE grade_section_id=%s AND attendance_date=%s",
                (grade_section_id, attendance_date),
            )
            return int(cur.rowcount or 0)

    def for_section_and_date(self, *, grade_section_id: str, attendance_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE grade_section_id=%s AND attendance_date=%s
                """,
                (grade_section_id, attendance_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def range_query(self, *, grade_section_id: str, date_from: date, date_to: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE grade_section_id=%s AND attendance_date BETWEEN %s AND %s
                ORDER BY attendance_date ASC
                """,
                (grade_section_id, date_from, date_to),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def by_student(self, *, student_id: str, date_from: date, date_to: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE student_id=%s AND attendance_date BETWEEN %s AND %s
                ORDER BY attendance_date DESC, grade_section_id ASC
                """,
                (student_id, date_from, date_to),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def daily_status_counts(
        self, *, attendance_date: date, grade_section_ids: Sequence[str]
    ) -> Mapping[str, StatusCounts]:
        ids = list(dict.fromkeys(grade_section_ids))
        if not ids:
            return {}

        # Left join keeps the roster as the denominator; rows for students no
        # longer enrolled are ignored so counts always sum to the roster size.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    e.grade_section_id,
                    COUNT(*) AS total,
                    COALESCE(SUM(a.status='present'), 0) AS present,
                    COALESCE(SUM(a.status='absent'), 0) AS absent,
                    COALESCE(SUM(a.status='late'), 0) AS late,
                    COALESCE(SUM(a.status='excused'), 0) AS excused
                FROM grade_section_enrollments e
                LEFT JOIN attendance a
                    ON a.grade_section_id = e.grade_section_id
                   AND a.student_id = e.student_id
                   AND a.attendance_date = %s
                WHERE e.status='active' AND e.grade_section_id IN ({in_clause(ids)})
                GROUP BY e.grade_section_id
                """,
                (attendance_date, *ids),
            )
            return {
                str(r["grade_section_id"]): StatusCounts(
                    total=int(r["total"]),
                    present=int(r["present"]),
                    absent=int(r["absent"]),
                    late=int(r["late"]),
                    excused=int(r["excused"]),
                )
                for r in fetchall(cur)
            }
