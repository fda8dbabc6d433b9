from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .model import GradeSection, RosterStudent


class GradeSectionRepository(Protocol):
    """Read-only view of grade sections and their active enrollment."""

    def get_by_id(self, grade_section_id: str) -> Optional[GradeSection]:
        raise NotImplementedError

    def list_active(self, *, teacher_id: Optional[str] = None) -> Sequence[GradeSection]:
        """Active sections ordered by grade level then section; optionally one teacher's."""

        raise NotImplementedError

    def list_roster(self, grade_section_id: str) -> Sequence[RosterStudent]:
        raise NotImplementedError

    def active_section_ids_for_student(self, student_id: str) -> Sequence[str]:
        raise NotImplementedError

    def names_by_id(self, grade_section_ids: Sequence[str]) -> Mapping[str, str]:
        raise NotImplementedError
