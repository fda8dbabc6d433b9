from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from ..auth.identity import Identity
from ..cache.coherence import CacheCoherence, CachedRead
from ..cache.keys import CacheKey, SchoolDay, SectionDay
from ..common.datetime_utils import iter_days, now_local, parse_iso_date, resolve_range
from ..common.validators import require_non_empty
from ..core.exceptions import ValidationError
from ..notifications.background import TaskRunner
from ..notifications.dispatcher import NotificationDispatcher
from .access import SectionAccessPolicy
from .aggregator import Aggregator
from .bulk import BulkMutator, DailyReset
from .model import MarkRequest
from .roster import RosterView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingNotification:
    grade_section_id: str
    attendance_date: date
    student_ids: tuple[str, ...]
    marked_by: str


@dataclass(frozen=True)
class BulkMarkOutcome:
    payload: dict
    notification: Optional[PendingNotification]


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class AttendanceService:
    """Request-level orchestration: validation, access, caching and write side effects."""

    def __init__(
        self,
        *,
        access: SectionAccessPolicy,
        roster: RosterView,
        aggregator: Aggregator,
        mutator: BulkMutator,
        daily_reset: DailyReset,
        cache: CacheCoherence,
        notifier: NotificationDispatcher,
        tasks: TaskRunner,
    ):
        self._access = access
        self._roster = roster
        self._aggregator = aggregator
        self._mutator = mutator
        self._reset = daily_reset
        self._cache = cache
        self._notifier = notifier
        self._tasks = tasks

    # ----- reads -----

    def list_markable_sections(self, identity: Identity) -> list[dict]:
        return [s.to_dict() for s in self._access.visible_sections(identity)]

    def daily_view(self, identity: Identity, grade_section_id: Any, date_value: Any) -> CachedRead:
        section_id = require_non_empty(grade_section_id, "grade_section_id")
        day = parse_iso_date(require_non_empty(date_value, "date"))

        def load() -> dict:
            entries = self._roster.daily_roster(section_id, day, identity)
            return {
                "students": [e.to_dict() for e in entries],
                "statistics": self._aggregator.day_stats(day, entries).to_dict(),
                "date": day.isoformat(),
                "grade_section_id": section_id,
            }

        key = self._key("daily", identity, grade_section_id=section_id, date=day)
        return self._cache.read_through(key, [SectionDay(section_id, day)], load)

    def school_overview(self, identity: Identity, date_value: Any) -> CachedRead:
        day = parse_iso_date(require_non_empty(date_value, "date"))

        def load() -> dict:
            rows = self._aggregator.school_daily_overview(day, identity)
            return {"date": day.isoformat(), "grade_sections": [r.to_dict() for r in rows]}

        key = self._key("grade-sections/daily", identity, date=day)
        return self._cache.read_through(key, [SchoolDay(day)], load)

    def range_stats(self, identity: Identity, grade_section_id: Any, start: Any, end: Any) -> CachedRead:
        section_id = require_non_empty(grade_section_id, "grade_section_id")
        date_from, date_to = resolve_range(_optional_str(start), _optional_str(end))

        def load() -> dict:
            self._access.require_section(section_id, identity)
            stats = self._aggregator.range_stats(section_id, date_from, date_to)
            return {
                "statistics": [s.to_dict() for s in stats],
                "date_range": {"start_date": date_from.isoformat(), "end_date": date_to.isoformat()},
                "grade_section_id": section_id,
            }

        key = self._key("stats", identity, grade_section_id=section_id, start_date=date_from, end_date=date_to)
        scopes = [SectionDay(section_id, d) for d in iter_days(date_from, date_to)]
        return self._cache.read_through(key, scopes, load)

    def student_history(self, identity: Identity, student_id: Any, start: Any, end: Any) -> CachedRead:
        sid = require_non_empty(student_id, "student_id")
        date_from, date_to = resolve_range(_optional_str(start), _optional_str(end))

        def load() -> dict:
            self._access.require_student_history(sid, identity)
            history = self._aggregator.student_history(sid, date_from, date_to)
            return {
                "history": [h.to_dict() for h in history],
                "date_range": {"start_date": date_from.isoformat(), "end_date": date_to.isoformat()},
                "student_id": sid,
            }

        # A student's rows may sit in any section, so depend on the whole school's days.
        key = self._key("history", identity, student_id=sid, start_date=date_from, end_date=date_to)
        scopes = [SchoolDay(d) for d in iter_days(date_from, date_to)]
        return self._cache.read_through(key, scopes, load)

    # ----- writes -----

    def bulk_mark(self, identity: Identity, body: Any) -> BulkMarkOutcome:
        body = body if isinstance(body, Mapping) else {}
        records = body.get("attendance_records")
        if not body.get("grade_section_id") or not body.get("date") or not isinstance(records, list):
            raise ValidationError("Missing required fields: grade_section_id, date, attendance_records")

        section_id = require_non_empty(body["grade_section_id"], "grade_section_id")
        day = parse_iso_date(body["date"])
        self._access.require_section(section_id, identity)

        requests = [
            MarkRequest(
                student_id=_optional_str(r.get("student_id")),
                status=_optional_str(r.get("status")),
                notes=_optional_str(r.get("notes")),
            )
            if isinstance(r, Mapping)
            else MarkRequest(student_id=None, status=None)
            for r in records
        ]

        result = self._mutator.mark_batch(section_id, day, requests, identity.user_id)

        payload = {
            "message": "Attendance marked successfully",
            **result.to_dict(),
            "marked_at": now_local().isoformat(),
        }
        notification = None
        if result.marked_count:
            notification = PendingNotification(
                grade_section_id=section_id,
                attendance_date=day,
                student_ids=tuple(dict.fromkeys(r.student_id for r in result.marked)),
                marked_by=identity.user_id,
            )
        return BulkMarkOutcome(payload=payload, notification=notification)

    def reset(self, identity: Identity, body: Any) -> dict:
        self._access.require_admin(identity, "reset attendance")
        body = body if isinstance(body, Mapping) else {}
        section_id = require_non_empty(body.get("grade_section_id"), "grade_section_id")
        day = parse_iso_date(require_non_empty(body.get("date"), "date"))
        self._access.require_section(section_id, identity)

        removed = self._reset.reset(section_id, day, identity.user_id)
        return {"message": "Attendance reset successfully", "removed_count": removed}

    def dispatch_notification(self, pending: PendingNotification) -> None:
        """Hand the notification to the background runner; never raises."""

        try:
            self._tasks.submit(
                self._notifier.notify,
                pending.grade_section_id,
                pending.attendance_date,
                list(pending.student_ids),
                pending.marked_by,
            )
        except Exception:
            logger.exception("Could not schedule attendance notification for %s", pending.grade_section_id)

    @staticmethod
    def _key(route: str, identity: Identity, **params) -> CacheKey:
        return CacheKey.build(route, params, role=identity.role.value, actor_id=identity.user_id)
