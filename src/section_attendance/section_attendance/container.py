from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.access import SectionAccessPolicy
from .attendance.aggregator import Aggregator
from .attendance.bulk import BulkMutator, DailyReset
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.roster import RosterView
from .attendance.service import AttendanceService
from .auth.identity import TokenDecoder
from .cache.backend import CacheBackend, InMemoryTTLCache
from .cache.coherence import CacheCoherence
from .core.constants import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_NOTIFICATION_TIMEOUT_SECONDS, DEFAULT_NOTIFICATION_WORKERS
from .database.connection import DatabaseConnection, DBConfig
from .grade_sections.mysql_grade_section_repository import MySQLGradeSectionRepository
from .grade_sections.repository import GradeSectionRepository
from .notifications.background import BackgroundTasks, TaskRunner
from .notifications.dispatcher import HttpNotificationDispatcher, LoggingNotificationDispatcher, NotificationDispatcher
from .school_settings.mysql_school_settings_repository import MySQLSchoolSettingsRepository
from .school_settings.repository import SchoolSettingsRepository
from .school_settings.service import AttendanceConfigService


@dataclass(frozen=True)
class Container:
    grade_sections_repo: GradeSectionRepository
    attendance_repo: AttendanceRepository
    settings_repo: SchoolSettingsRepository

    cache: CacheCoherence
    token_decoder: TokenDecoder
    notifier: NotificationDispatcher
    tasks: TaskRunner

    attendance_service: AttendanceService
    config_service: AttendanceConfigService

    def close(self) -> None:
        """Release the background pool and the notification HTTP client."""

        shutdown = getattr(self.tasks, "shutdown", None)
        if shutdown is not None:
            shutdown(wait=True)
        close = getattr(self.notifier, "close", None)
        if close is not None:
            close()


def build_cache_backend(settings: Any) -> CacheBackend:
    backend = str(getattr(settings, "CACHE_BACKEND", "memory")).lower()
    if backend == "redis":
        from .cache.redis_backend import RedisCache

        return RedisCache.from_url(str(getattr(settings, "REDIS_URL")))
    return InMemoryTTLCache()


def build_notifier(settings: Any) -> NotificationDispatcher:
    url = getattr(settings, "NOTIFICATION_URL", None)
    if not url:
        return LoggingNotificationDispatcher()
    timeout = float(getattr(settings, "NOTIFICATION_TIMEOUT_SECONDS", DEFAULT_NOTIFICATION_TIMEOUT_SECONDS))
    return HttpNotificationDispatcher(url, timeout=timeout)


def wire(
    *,
    grade_sections_repo: GradeSectionRepository,
    attendance_repo: AttendanceRepository,
    settings_repo: SchoolSettingsRepository,
    cache_backend: CacheBackend,
    token_decoder: TokenDecoder,
    notifier: NotificationDispatcher,
    tasks: TaskRunner,
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    clock: Optional[Any] = None,
) -> Container:
    """Assemble services from already-built collaborators (MySQL or in-memory)."""

    clock_kwargs = {"clock": clock} if clock else {}

    cache = CacheCoherence(cache_backend, ttl_seconds=cache_ttl_seconds)
    access = SectionAccessPolicy(grade_sections_repo)
    roster = RosterView(grade_sections_repo, attendance_repo, access)
    aggregator = Aggregator(grade_sections_repo, attendance_repo, access)
    mutator = BulkMutator(grade_sections_repo, attendance_repo, cache, **clock_kwargs)
    daily_reset = DailyReset(attendance_repo, cache)

    attendance_service = AttendanceService(
        access=access,
        roster=roster,
        aggregator=aggregator,
        mutator=mutator,
        daily_reset=daily_reset,
        cache=cache,
        notifier=notifier,
        tasks=tasks,
    )
    config_service = AttendanceConfigService(settings_repo, **clock_kwargs)

    return Container(
        grade_sections_repo=grade_sections_repo,
        attendance_repo=attendance_repo,
        settings_repo=settings_repo,
        cache=cache,
        token_decoder=token_decoder,
        notifier=notifier,
        tasks=tasks,
        attendance_service=attendance_service,
        config_service=config_service,
    )


def build_container(*, db_config: dict, settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return wire(
        grade_sections_repo=MySQLGradeSectionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        settings_repo=MySQLSchoolSettingsRepository(conn),
        cache_backend=build_cache_backend(settings),
        token_decoder=TokenDecoder(
            str(getattr(settings, "JWT_SECRET")),
            algorithm=str(getattr(settings, "JWT_ALGORITHM", "HS256")),
        ),
        notifier=build_notifier(settings),
        tasks=BackgroundTasks(max_workers=int(getattr(settings, "NOTIFICATION_WORKERS", DEFAULT_NOTIFICATION_WORKERS))),
        cache_ttl_seconds=int(getattr(settings, "CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)),
    )
