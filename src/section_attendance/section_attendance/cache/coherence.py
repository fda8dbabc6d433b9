from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Optional

from ..core.constants import DEFAULT_CACHE_TTL_SECONDS
from .backend import CacheBackend, CacheError
from .keys import CacheKey, CacheScope, SchoolDay, SectionDay

logger = logging.getLogger(__name__)

HIT = "HIT"
MISS = "MISS"


@dataclass(frozen=True)
class CachedRead:
    value: Any
    status: str

    @property
    def hit(self) -> bool:
        return self.status == HIT


class CacheCoherence:
    """Read-through cache in front of roster and statistics reads.

    Reads are best-effort: any backend failure falls through to the loader.
    Every write path invalidates through `invalidate_day`, which runs before
    the write is acknowledged to the client.
    """

    def __init__(self, backend: CacheBackend, *, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS):
        self._backend = backend
        self._ttl = int(ttl_seconds)

    def read_through(self, key: CacheKey, scopes: Iterable[CacheScope], loader: Callable[[], Any]) -> CachedRead:
        rendered = key.render()
        tokens = sorted({s.token() for s in scopes})

        generations: Optional[tuple[int, ...]] = None
        try:
            generations = self._backend.generations(tokens)
            raw = self._backend.get(rendered)
        except CacheError as e:
            logger.warning("Cache read failed for %s: %s", rendered, e)
            generations, raw = None, None

        if raw is not None:
            try:
                return CachedRead(value=json.loads(raw), status=HIT)
            except ValueError:
                logger.warning("Discarding undecodable cache entry %s", rendered)

        value = loader()

        if generations is not None:
            try:
                stored = self._backend.set(
                    rendered,
                    json.dumps(value),
                    ttl=self._ttl,
                    scopes=tokens,
                    generations=generations,
                )
                if not stored:
                    logger.debug("Skipped caching %s: invalidated while loading", rendered)
            except CacheError as e:
                logger.warning("Cache write failed for %s: %s", rendered, e)

        return CachedRead(value=value, status=MISS)

    def invalidate_day(self, grade_section_id: str, attendance_date: date) -> int:
        """Drop everything derived from one section's attendance on one day.

        Covers the section's own reads plus every school-wide read for the
        date, whoever cached them.
        """

        scopes = [SectionDay(grade_section_id, attendance_date).token(), SchoolDay(attendance_date).token()]
        try:
            removed = self._backend.invalidate(scopes)
        except CacheError as e:
            logger.warning("Cache invalidation failed for %s on %s: %s", grade_section_id, attendance_date, e)
            return 0
        logger.debug("Invalidated %d cache entries for %s on %s", removed, grade_section_id, attendance_date)
        return removed
