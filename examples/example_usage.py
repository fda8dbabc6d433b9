"""Example: use the service layer directly (no Flask).

Controllers are a thin layer; the attendance rules live in the services.
"""

import importlib

from config import get_settings_module

from src.section_attendance.section_attendance.auth.identity import Identity
from src.section_attendance.section_attendance.common.datetime_utils import today_local
from src.section_attendance.section_attendance.container import build_container
from src.section_attendance.section_attendance.core.enums import Role


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)
    admin = Identity(user_id="00000000-0000-0000-0000-000000000001", role=Role.ADMIN)
    read = container.attendance_service.school_overview(admin, today_local().isoformat())
    print(read.status, read.value)


if __name__ == "__main__":
    main()
