from __future__ import annotations

from typing import Sequence

from ..auth.identity import Identity
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError
from ..grade_sections.model import GradeSection
from ..grade_sections.repository import GradeSectionRepository


class SectionAccessPolicy:
    """Who may see or mark which grade section.

    Admins reach every section, teachers only the sections they own;
    students and parents never reach section-level data.
    """

    def __init__(self, grade_sections: GradeSectionRepository):
        self._grade_sections = grade_sections

    def require_staff(self, identity: Identity) -> None:
        if identity.role not in (Role.ADMIN, Role.TEACHER):
            raise AuthorizationError("Access denied")

    def require_admin(self, identity: Identity, action: str) -> None:
        if not identity.is_admin:
            raise AuthorizationError(f"Only admins can {action}")

    def require_section(self, grade_section_id: str, identity: Identity) -> GradeSection:
        self.require_staff(identity)
        section = self._grade_sections.get_by_id(grade_section_id)
        if not section:
            raise NotFoundError("Grade section not found")
        if identity.is_teacher and section.teacher_id != identity.user_id:
            raise AuthorizationError("Access denied to this grade section")
        return section

    def visible_sections(self, identity: Identity) -> Sequence[GradeSection]:
        self.require_staff(identity)
        if identity.is_teacher:
            return self._grade_sections.list_active(teacher_id=identity.user_id)
        return self._grade_sections.list_active()

    def require_student_history(self, student_id: str, identity: Identity) -> None:
        if identity.role == Role.STUDENT:
            if student_id != identity.user_id:
                raise AuthorizationError("Access denied")
            return
        if identity.role == Role.PARENT:
            raise AuthorizationError("Access denied")
        if identity.is_teacher:
            section_ids = self._grade_sections.active_section_ids_for_student(student_id)
            if not section_ids:
                raise NotFoundError("Student not found")
            owned = {s.grade_section_id for s in self._grade_sections.list_active(teacher_id=identity.user_id)}
            if owned.isdisjoint(section_ids):
                raise AuthorizationError("Access denied")
