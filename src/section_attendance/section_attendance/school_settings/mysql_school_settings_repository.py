from __future__ import annotations

import json
from dataclasses import fields
from datetime import datetime
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import AttendanceConfig
from .repository import SchoolSettingsRepository

SETTINGS_ROW_ID = 1


class MySQLSchoolSettingsRepository(SchoolSettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_attendance_config(self) -> Optional[AttendanceConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT attendance_config FROM school_settings WHERE settings_id=%s", (SETTINGS_ROW_ID,))
            row = fetchone(cur)
        if not row or row.get("attendance_config") is None:
            return None

        raw = row["attendance_config"]
        data = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else dict(raw)
        known = {f.name for f in fields(AttendanceConfig)}
        return AttendanceConfig(**{k: v for k, v in data.items() if k in known})

    def save_attendance_config(self, config: AttendanceConfig, *, updated_by: str, updated_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO school_settings(settings_id, attendance_config, updated_by, updated_at)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    attendance_config=VALUES(attendance_config),
                    updated_by=VALUES(updated_by),
                    updated_at=VALUES(updated_at)
                """,
                (SETTINGS_ROW_ID, json.dumps(config.to_dict()), updated_by, updated_at),
            )
