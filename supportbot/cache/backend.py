"""Key-value cache backends: Redis and an in-process fallback behind one interface."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Contract for string key-value stores with TTL and capped lists."""

    name = "cache"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def push_capped(self, key: str, value: str, max_len: int, ttl: int) -> None:
        """Prepend value to the list at key, keep max_len newest entries, refresh TTL."""
        raise NotImplementedError

    @abstractmethod
    async def range(self, key: str, limit: int) -> list[str]:
        """Return up to limit newest list entries, newest first."""
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def describe(self) -> dict[str, Any]:
        return {"backend": self.name}


class RedisCacheBackend(CacheBackend):
    """Cache backed by a Redis server via redis.asyncio."""

    name = "redis"

    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        client = Redis.from_url(url, decode_responses=True, socket_connect_timeout=10, socket_timeout=5)
        return cls(client)

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.client.set(key, value, ex=ttl)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def push_capped(self, key: str, value: str, max_len: int, ttl: int) -> None:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.lpush(key, value)
            pipe.ltrim(key, 0, max_len - 1)
            pipe.expire(key, ttl)
            await pipe.execute()

    async def range(self, key: str, limit: int) -> list[str]:
        if limit <= 0:
            return []
        return list(await self.client.lrange(key, 0, limit - 1))

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as exc:
            logger.warning("cache.redis.ping_failed", extra={"event": "cache.redis.ping_failed", "error": str(exc)})
            return False

    async def close(self) -> None:
        await self.client.aclose()

    async def describe(self) -> dict[str, Any]:
        info: dict[str, Any] = {"backend": self.name, "connected": await self.ping()}
        try:
            info["used_memory"] = (await self.client.info("memory")).get("used_memory_human")
        except (RedisError, OSError):
            pass
        return info


class MemoryCacheBackend(CacheBackend):
    """Process-local TTL map used when Redis is disabled or unreachable."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, tuple[Any, float]] = {}

    def _live(self, key: str) -> Any | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._values[key]
            return None
        return value

    def _sweep(self) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._values.items() if now >= expires_at]
        for key in expired:
            del self._values[key]

    async def get(self, key: str) -> str | None:
        value = self._live(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._sweep()
        self._values[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    async def push_capped(self, key: str, value: str, max_len: int, ttl: int) -> None:
        self._sweep()
        current = self._live(key)
        items = list(current) if isinstance(current, list) else []
        items.insert(0, value)
        self._values[key] = (items[:max_len], self._clock() + ttl)

    async def range(self, key: str, limit: int) -> list[str]:
        current = self._live(key)
        if not isinstance(current, list) or limit <= 0:
            return []
        return list(current[:limit])

    async def describe(self) -> dict[str, Any]:
        return {"backend": self.name, "keys": len(self._values)}
