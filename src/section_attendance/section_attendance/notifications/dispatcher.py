from __future__ import annotations

import logging
from datetime import date
from typing import Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Tells students (and their guardians) that attendance was marked.

    Fire-and-forget: callers never consume a result.
    """

    def notify(self, grade_section_id: str, attendance_date: date, student_ids: Sequence[str], marked_by: str) -> None:
        raise NotImplementedError


class HttpNotificationDispatcher(NotificationDispatcher):
    def __init__(self, url: str, *, timeout: float = 5.0, client: httpx.Client | None = None):
        self._url = url
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def notify(self, grade_section_id: str, attendance_date: date, student_ids: Sequence[str], marked_by: str) -> None:
        if not student_ids:
            return
        resp = self._client.post(
            self._url,
            json={
                "action": "send-attendance-notification",
                "data": {
                    "gradeSectionId": grade_section_id,
                    "date": attendance_date.isoformat(),
                    "studentIds": list(student_ids),
                    "markedBy": marked_by,
                },
            },
        )
        resp.raise_for_status()

    def close(self) -> None:
        self._client.close()


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Used when no push endpoint is configured."""

    def notify(self, grade_section_id: str, attendance_date: date, student_ids: Sequence[str], marked_by: str) -> None:
        logger.info(
            "Attendance notification for %d students of %s on %s (marked by %s)",
            len(student_ids), grade_section_id, attendance_date, marked_by,
        )
