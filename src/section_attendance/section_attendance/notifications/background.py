from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TaskRunner(Protocol):
    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        raise NotImplementedError


class BackgroundTasks(TaskRunner):
    """Detached, at-most-once execution: no retries, failures are only logged."""

    def __init__(self, *, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="attendance-bg")

    def submit(self, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        try:
            return self._executor.submit(self._run, fn, *args)
        except RuntimeError:
            logger.warning("Background executor is shut down; dropping %s", getattr(fn, "__qualname__", fn))
            return None

    @staticmethod
    def _run(fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("Background task %s failed", getattr(fn, "__qualname__", fn))

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
