from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..cache.coherence import CacheCoherence
from ..common.datetime_utils import now_local
from ..core.enums import UNMARKED, AttendanceStatus
from ..grade_sections.repository import GradeSectionRepository
from .model import BulkMarkResult, MarkError, MarkRequest
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class BulkMutator:
    """Best-effort batch upsert for one section and day.

    Each record stands alone: a rejected record never rolls back the others,
    and the result lists every rejection with its reason.
    """

    def __init__(
        self,
        grade_sections: GradeSectionRepository,
        attendance: AttendanceRepository,
        cache: CacheCoherence,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._grade_sections = grade_sections
        self._attendance = attendance
        self._cache = cache
        self._clock = clock

    @staticmethod
    def _reject(req: MarkRequest, roster_ids: set[str]) -> Optional[MarkError]:
        if not req.student_id:
            return MarkError(student_id=None, reason="Missing student_id")
        if req.status == UNMARKED:
            return MarkError(student_id=req.student_id, reason="Status 'unmarked' cannot be set; use reset instead")
        if req.status not in {s.value for s in AttendanceStatus}:
            return MarkError(student_id=req.student_id, reason=f"Invalid status: {req.status!r}")
        if req.student_id not in roster_ids:
            return MarkError(student_id=req.student_id, reason="Student is not enrolled in this grade section")
        return None

    def mark_batch(
        self,
        grade_section_id: str,
        attendance_date: date,
        records: Sequence[MarkRequest],
        marked_by: str,
    ) -> BulkMarkResult:
        roster_ids = {s.student_id for s in self._grade_sections.list_roster(grade_section_id)}
        marked_at = self._clock()
        result = BulkMarkResult()

        try:
            for req in records:
                error = self._reject(req, roster_ids)
                if error:
                    result.errors.append(error)
                    continue
                notes = (req.notes or "").strip() or None
                result.marked.append(
                    self._attendance.upsert(
                        grade_section_id=grade_section_id,
                        student_id=str(req.student_id),
                        attendance_date=attendance_date,
                        status=AttendanceStatus(req.status),
                        notes=notes,
                        marked_by=marked_by,
                        marked_at=marked_at,
                    )
                )
        finally:
            # Runs even when the store fails mid-batch: earlier rows are committed.
            if result.marked_count:
                self._cache.invalidate_day(grade_section_id, attendance_date)

        if result.errors:
            logger.warning(
                "Rejected %d of %d attendance records for %s on %s",
                len(result.errors), len(records), grade_section_id, attendance_date,
            )
        logger.info(
            "Marked %d attendance records for %s on %s by %s",
            result.marked_count, grade_section_id, attendance_date, marked_by,
        )
        return result


class DailyReset:
    """Reverts a section's day to unmarked by deleting its rows."""

    def __init__(self, attendance: AttendanceRepository, cache: CacheCoherence):
        self._attendance = attendance
        self._cache = cache

    def reset(self, grade_section_id: str, attendance_date: date, reset_by: str) -> int:
        try:
            removed = self._attendance.delete_all(grade_section_id=grade_section_id, attendance_date=attendance_date)
        finally:
            self._cache.invalidate_day(grade_section_id, attendance_date)
        logger.info(
            "Reset attendance for %s on %s by %s (%d records removed)",
            grade_section_id, attendance_date, reset_by, removed,
        )
        return removed
