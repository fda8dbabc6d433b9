from __future__ import annotations

from typing import Optional, Sequence

import redis

from ..core.constants import GENERATION_TTL_SECONDS
from .backend import CacheBackend, CacheError


class RedisCache(CacheBackend):
    """Redis-backed cache shared by every process serving the API.

    Layout: `<ns>:v:<key>` holds a value, `<ns>:idx:<scope>` is the set of
    keys depending on a scope, `<ns>:gen:<scope>` is the scope generation.
    """

    def __init__(self, client: redis.Redis, *, namespace: str = "attendance-cache"):
        self._client = client
        self._ns = namespace

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisCache":
        return cls(redis.Redis.from_url(url, decode_responses=True, socket_timeout=1.0), **kwargs)

    def _value_key(self, key: str) -> str:
        return f"{self._ns}:v:{key}"

    def _index_key(self, scope: str) -> str:
        return f"{self._ns}:idx:{scope}"

    def _gen_key(self, scope: str) -> str:
        return f"{self._ns}:gen:{scope}"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(self._value_key(key))
        except redis.RedisError as e:
            raise CacheError(str(e)) from e

    def generations(self, scopes: Sequence[str]) -> tuple[int, ...]:
        if not scopes:
            return ()
        try:
            values = self._client.mget([self._gen_key(s) for s in scopes])
        except redis.RedisError as e:
            raise CacheError(str(e)) from e
        return tuple(int(v or 0) for v in values)

    def set(self, key: str, value: str, *, ttl: int, scopes: Sequence[str], generations: Sequence[int]) -> bool:
        gen_keys = [self._gen_key(s) for s in scopes]
        try:
            with self._client.pipeline() as pipe:
                if gen_keys:
                    pipe.watch(*gen_keys)
                    current = tuple(int(v or 0) for v in pipe.mget(gen_keys))
                    if current != tuple(generations):
                        pipe.unwatch()
                        return False
                pipe.multi()
                pipe.set(self._value_key(key), value, ex=int(ttl))
                for scope in scopes:
                    pipe.sadd(self._index_key(scope), key)
                    pipe.expire(self._index_key(scope), int(ttl))
                pipe.execute()
                return True
        except redis.WatchError:
            return False
        except redis.RedisError as e:
            raise CacheError(str(e)) from e

    def invalidate(self, scopes: Sequence[str]) -> int:
        if not scopes:
            return 0
        try:
            # Bump, read and drop each index in one transaction so a fill that
            # lands afterwards indexes under a fresh set this call never touches.
            pipe = self._client.pipeline(transaction=True)
            for scope in scopes:
                pipe.incr(self._gen_key(scope))
                pipe.expire(self._gen_key(scope), GENERATION_TTL_SECONDS)
                pipe.smembers(self._index_key(scope))
                pipe.delete(self._index_key(scope))
            results = pipe.execute()

            keys: set[str] = set()
            for members in results[2::4]:
                keys.update(members or ())
            removed = self._client.delete(*[self._value_key(k) for k in keys]) if keys else 0
        except redis.RedisError as e:
            raise CacheError(str(e)) from e
        return int(removed)

    def clear(self) -> None:
        try:
            for pattern in (f"{self._ns}:v:*", f"{self._ns}:idx:*"):
                for name in self._client.scan_iter(match=pattern):
                    self._client.delete(name)
        except redis.RedisError as e:
            raise CacheError(str(e)) from e
