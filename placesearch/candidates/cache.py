from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..errors import CacheUnavailable

logger = logging.getLogger(__name__)


def make_key(prefix: str, payload: dict[str, Any]) -> str:
    normalized = json.dumps(payload, sort_keys=True, default=str, ensure_ascii=False)
    return f"{prefix}:{hashlib.sha256(normalized.encode()).hexdigest()[:32]}"


class _Stats:
    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0

    def as_dict(self, size: int | None) -> dict:
        total = self.hits + self.misses
        return {
            "size": size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 1) if total > 0 else 0.0,
        }


class LocalTTLCache:
    """Bounded in-process cache (tier L1).

    Entries are never mutated after ``set``; a later ``set`` on the same key
    replaces the entry whole, so the last writer wins.
    """

    def __init__(
        self,
        ttl: float,
        maxsize: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._maxsize = maxsize
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._stats = _Stats()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry and entry[0] > self._clock():
            self._stats.hits += 1
            return entry[1]
        if entry:
            del self._entries[key]
        self._stats.misses += 1
        return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = self._clock() + (self._ttl if ttl is None else ttl)
        self._entries[key] = (expires_at, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self._maxsize:
            self._entries.popitem(last=False)

    def stats(self) -> dict:
        return self._stats.as_dict(len(self._entries))

    def clear(self) -> None:
        self._entries.clear()
        self._stats = _Stats()


class RedisCache:
    """Shared cache (tier L2) backed by Redis.

    Any Redis or connection error is re-raised as ``CacheUnavailable`` so the
    caller can bypass the tier.
    """

    def __init__(self, url: str, timeout: float = 0.5, client: Any | None = None) -> None:
        self._client = client or redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
        )
        self._stats = _Stats()

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"redis get failed: {exc}", stage="candidates") from exc
        if value is None:
            self._stats.misses += 1
        else:
            self._stats.hits += 1
        return value

    async def set(self, key: str, value: str, ttl: float) -> None:
        try:
            await self._client.set(key, value, ex=int(ttl))
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"redis set failed: {exc}", stage="candidates") from exc

    def stats(self) -> dict:
        return self._stats.as_dict(None)
