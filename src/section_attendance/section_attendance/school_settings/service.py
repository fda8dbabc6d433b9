from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping

from ..auth.identity import Identity
from ..common.datetime_utils import now_local
from ..common.validators import require_hhmm, require_non_negative_int
from ..core.enums import UNMARKED, AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, ValidationError
from .model import AttendanceConfig
from .repository import SchoolSettingsRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("daily_reset_time", "default_status", "enable_auto_reset")


class AttendanceConfigService:
    def __init__(self, settings: SchoolSettingsRepository, *, clock: Callable[[], datetime] = now_local):
        self._settings = settings
        self._clock = clock

    def get_config(self, identity: Identity) -> AttendanceConfig:
        if identity.role not in (Role.ADMIN, Role.TEACHER):
            raise AuthorizationError("Access denied")
        return self._settings.get_attendance_config() or AttendanceConfig()

    def update_config(self, identity: Identity, config: Any) -> AttendanceConfig:
        if not identity.is_admin:
            raise AuthorizationError("Only admins can update attendance configuration")
        if not isinstance(config, Mapping):
            raise ValidationError("Missing config in request body")

        missing = [f for f in REQUIRED_FIELDS if f not in config]
        if missing:
            raise ValidationError(f"Missing required config fields: {', '.join(missing)}")

        new_config = self._validate(config)
        self._settings.save_attendance_config(new_config, updated_by=identity.user_id, updated_at=self._clock())
        logger.info("Attendance configuration updated by %s", identity.user_id)
        return new_config

    @staticmethod
    def _validate(config: Mapping[str, Any]) -> AttendanceConfig:
        defaults = AttendanceConfig()

        default_status = config["default_status"]
        allowed = {UNMARKED, *(s.value for s in AttendanceStatus)}
        if not isinstance(default_status, str) or default_status not in allowed:
            raise ValidationError(f"default_status must be one of: {', '.join(sorted(allowed))}")

        enable_auto_reset = config["enable_auto_reset"]
        if not isinstance(enable_auto_reset, bool):
            raise ValidationError("enable_auto_reset must be a boolean")

        return AttendanceConfig(
            daily_reset_time=require_hhmm(config["daily_reset_time"], "daily_reset_time"),
            default_status=default_status,
            enable_auto_reset=enable_auto_reset,
            auto_reset_time=require_hhmm(config.get("auto_reset_time", defaults.auto_reset_time), "auto_reset_time"),
            late_threshold_minutes=require_non_negative_int(
                config.get("late_threshold_minutes", defaults.late_threshold_minutes), "late_threshold_minutes"
            ),
            absent_threshold_minutes=require_non_negative_int(
                config.get("absent_threshold_minutes", defaults.absent_threshold_minutes), "absent_threshold_minutes"
            ),
        )
