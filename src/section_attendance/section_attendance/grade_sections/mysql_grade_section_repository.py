from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import GradeSection, RosterStudent
from .repository import GradeSectionRepository

_SECTION_COLUMNS = "grade_section_id, name, grade_level, section, teacher_id, is_active"


def _to_section(r: dict) -> GradeSection:
    return GradeSection(
        grade_section_id=str(r["grade_section_id"]),
        name=r["name"],
        grade_level=int(r["grade_level"]),
        section=r["section"],
        teacher_id=r.get("teacher_id"),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLGradeSectionRepository(GradeSectionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, grade_section_id: str) -> Optional[GradeSection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SECTION_COLUMNS} FROM grade_sections WHERE grade_section_id=%s",
                (grade_section_id,),
            )
            r = fetchone(cur)
            return _to_section(r) if r else None

    def list_active(self, *, teacher_id: Optional[str] = None) -> Sequence[GradeSection]:
        clauses = ["is_active=1"]
        params: list[object] = []
        if teacher_id is not None:
            clauses.append("teacher_id=%s")
            params.append(teacher_id)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SECTION_COLUMNS}
                FROM grade_sections
                WHERE {" AND ".join(clauses)}
                ORDER BY grade_level ASC, section ASC
                """,
                tuple(params),
            )
            return [_to_section(r) for r in fetchall(cur)]

    def list_roster(self, grade_section_id: str) -> Sequence[RosterStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name
                FROM grade_section_enrollments e
                JOIN users u ON u.user_id = e.student_id
                WHERE e.grade_section_id=%s AND e.status='active'
                ORDER BY LOWER(u.full_name) ASC, u.user_id ASC
                """,
                (grade_section_id,),
            )
            return [RosterStudent(student_id=str(r["user_id"]), full_name=r["full_name"]) for r in fetchall(cur)]

    def active_section_ids_for_student(self, student_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT grade_section_id
                FROM grade_section_enrollments
                WHERE student_id=%s AND status='active'
                """,
                (student_id,),
            )
            return [str(r["grade_section_id"]) for r in fetchall(cur)]

    def names_by_id(self, grade_section_ids: Sequence[str]) -> Mapping[str, str]:
        ids = sorted(set(grade_section_ids))
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT grade_section_id, name FROM grade_sections WHERE grade_section_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return {str(r["grade_section_id"]): r["name"] for r in fetchall(cur)}
