from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from ..core.constants import GENERATION_TTL_SECONDS


class CacheError(Exception):
    """The cache backend could not serve a request."""


class CacheBackend(Protocol):
    """Shared key/value space with a scope index.

    Each entry is stored with the scope tokens it depends on. Invalidating a
    scope drops every entry indexed under it and bumps the scope generation;
    a `set` that was computed against an older generation is refused, so a
    read that raced with a write cannot repopulate pre-write data.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def generations(self, scopes: Sequence[str]) -> tuple[int, ...]:
        raise NotImplementedError

    def set(self, key: str, value: str, *, ttl: int, scopes: Sequence[str], generations: Sequence[int]) -> bool:
        raise NotImplementedError

    def invalidate(self, scopes: Sequence[str]) -> int:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


@dataclass
class _Entry:
    value: str
    expires_at: float
    scopes: tuple[str, ...]


class InMemoryTTLCache(CacheBackend):
    """Process-local backend; safe across Flask worker threads.

    Generations are pruned once they have not moved for
    GENERATION_TTL_SECONDS, matching the expiry the Redis backend sets.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._index: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}
        self._bumped_at: dict[str, float] = {}
        self._next_prune = clock() + GENERATION_TTL_SECONDS

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if not entry:
            return
        for scope in entry.scopes:
            keys = self._index.get(scope)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._index[scope]

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                self._drop(key)
                return None
            return entry.value

    def generations(self, scopes: Sequence[str]) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._generations.get(s, 0) for s in scopes)

    def set(self, key: str, value: str, *, ttl: int, scopes: Sequence[str], generations: Sequence[int]) -> bool:
        with self._lock:
            if tuple(self._generations.get(s, 0) for s in scopes) != tuple(generations):
                return False
            self._drop(key)
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl, scopes=tuple(scopes))
            for scope in scopes:
                self._index.setdefault(scope, set()).add(key)
            return True

    def invalidate(self, scopes: Sequence[str]) -> int:
        removed = 0
        with self._lock:
            now = self._clock()
            for scope in scopes:
                self._generations[scope] = self._generations.get(scope, 0) + 1
                self._bumped_at[scope] = now
                for key in list(self._index.get(scope, ())):
                    if key in self._entries:
                        self._drop(key)
                        removed += 1
            if now >= self._next_prune:
                self._prune_generations(now)
        return removed

    def _prune_generations(self, now: float) -> None:
        cutoff = now - GENERATION_TTL_SECONDS
        for scope in [s for s, at in self._bumped_at.items() if at <= cutoff]:
            del self._bumped_at[scope]
            self._generations.pop(scope, None)
        self._next_prune = now + GENERATION_TTL_SECONDS / 7

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._index.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for e in self._entries.values() if e.expires_at > now)
