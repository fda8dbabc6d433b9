from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "testing")

import pytest

from src.section_attendance.section_attendance.auth.identity import Identity, TokenDecoder
from src.section_attendance.section_attendance.cache.backend import InMemoryTTLCache
from src.section_attendance.section_attendance.container import wire
from tests.support import (
    EMPTY_SECTION,
    JWT_SECRET,
    MARKED_AT,
    SECTION_A,
    SECTION_A_STUDENTS,
    SECTION_B,
    SECTION_B_STUDENTS,
    TEACHER_A,
    TEACHER_B,
    FakeClock,
    InMemoryAttendance,
    InMemoryGradeSections,
    InMemorySettings,
    RecordingNotifier,
    RecordingTasks,
)


@pytest.fixture
def grade_sections() -> InMemoryGradeSections:
    repo = InMemoryGradeSections()
    repo.add(SECTION_A, "Grade 7 - A", teacher_id=TEACHER_A.user_id, students=SECTION_A_STUDENTS, section="A")
    repo.add(SECTION_B, "Grade 7 - B", teacher_id=TEACHER_B.user_id, students=SECTION_B_STUDENTS, section="B")
    repo.add(EMPTY_SECTION, "Grade 8 - A", teacher_id=TEACHER_A.user_id, grade_level=8, section="A")
    return repo


@pytest.fixture
def attendance_repo(grade_sections) -> InMemoryAttendance:
    return InMemoryAttendance(grade_sections)


@pytest.fixture
def settings_repo() -> InMemorySettings:
    return InMemorySettings()


@pytest.fixture
def cache_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_backend(cache_clock) -> InMemoryTTLCache:
    return InMemoryTTLCache(clock=cache_clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def tasks() -> RecordingTasks:
    return RecordingTasks()


@pytest.fixture
def token_decoder() -> TokenDecoder:
    return TokenDecoder(JWT_SECRET)


@pytest.fixture
def container(grade_sections, attendance_repo, settings_repo, cache_backend, token_decoder, notifier, tasks):
    return wire(
        grade_sections_repo=grade_sections,
        attendance_repo=attendance_repo,
        settings_repo=settings_repo,
        cache_backend=cache_backend,
        token_decoder=token_decoder,
        notifier=notifier,
        tasks=tasks,
        cache_ttl_seconds=60,
        clock=lambda: MARKED_AT,
    )


@pytest.fixture
def service(container):
    return container.attendance_service


@pytest.fixture
def app(container):
    from src.section_attendance.section_attendance.main import create_app

    app = create_app(container)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(token_decoder):
    def _headers(identity: Identity) -> dict:
        return {"Authorization": f"Bearer {token_decoder.encode(identity)}"}

    return _headers
