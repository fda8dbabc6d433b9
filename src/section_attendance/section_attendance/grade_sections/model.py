from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GradeSection:
    """A cohort of students sharing one daily roll call."""

    grade_section_id: str
    name: str
    grade_level: int
    section: str
    teacher_id: Optional[str]
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.grade_section_id,
            "name": self.name,
            "grade_level": self.grade_level,
            "section": self.section,
            "teacher_id": self.teacher_id,
        }


@dataclass(frozen=True)
class RosterStudent:
    """A student with active enrollment in a grade section."""

    student_id: str
    full_name: str
