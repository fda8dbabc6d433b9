from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import AttendanceConfig


class SchoolSettingsRepository(Protocol):
    def get_attendance_config(self) -> Optional[AttendanceConfig]:
        """Stored config, or None when nothing has been saved yet."""

        raise NotImplementedError

    def save_attendance_config(self, config: AttendanceConfig, *, updated_by: str, updated_at: datetime) -> None:
        raise NotImplementedError
