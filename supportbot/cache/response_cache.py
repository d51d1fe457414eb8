"""Answer cache keyed by a normalized query fingerprint."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from redis.exceptions import RedisError

from supportbot.cache.backend import CacheBackend

logger = logging.getLogger(__name__)

RESPONSE_NAMESPACE = "msg_response"


def normalize_query(query: str) -> str:
    return query.strip().lower()


def make_cache_key(query: str) -> str:
    """Deterministic key; "Return policy?" and "return policy? " collide on purpose."""
    digest = hashlib.md5(normalize_query(query).encode("utf-8")).hexdigest()
    return f"{RESPONSE_NAMESPACE}:{digest}"


@dataclass(frozen=True)
class CachedAnswer:
    query: str
    answer: str
    timestamp: str
    metadata: dict[str, Any] = field(default_factory=dict)


class ResponseCache:
    """Dumb get/put store; write policy lives in the orchestrator."""

    def __init__(self, backend: CacheBackend, default_ttl: int = 86400) -> None:
        self.backend = backend
        self.default_ttl = default_ttl

    async def get(self, query: str) -> CachedAnswer | None:
        try:
            raw = await self.backend.get(make_cache_key(query))
        except (RedisError, OSError) as exc:
            logger.error("cache.response.get_failed", extra={"event": "cache.response.get_failed", "error": str(exc)})
            return None
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            return CachedAnswer(
                query=payload["query"],
                answer=payload["response"],
                timestamp=payload.get("timestamp", ""),
                metadata=payload.get("metadata") or {},
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("cache.response.corrupt", extra={"event": "cache.response.corrupt", "error": str(exc)})
            return None

    async def put(
        self,
        query: str,
        answer: str,
        ttl: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        payload = {
            "query": query,
            "response": answer,
            "metadata": metadata or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.backend.set(make_cache_key(query), json.dumps(payload), ttl or self.default_ttl)
        except (RedisError, OSError) as exc:
            logger.error("cache.response.put_failed", extra={"event": "cache.response.put_failed", "error": str(exc)})
            return False
        return True
