"""Per-user chat message history kept in the cache backend."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from redis.exceptions import RedisError

from supportbot.cache.backend import CacheBackend

logger = logging.getLogger(__name__)

HISTORY_NAMESPACE = "msg_history"


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str


class ConversationHistory:
    """Capped newest-first message list per user with a sliding TTL."""

    def __init__(self, backend: CacheBackend, ttl: int = 3600, max_messages: int = 100) -> None:
        self.backend = backend
        self.ttl = ttl
        self.max_messages = max_messages

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{HISTORY_NAMESPACE}:{user_id}"

    async def append(self, user_id: str, message: dict[str, Any]) -> bool:
        try:
            await self.backend.push_capped(self._key(user_id), json.dumps(message), self.max_messages, self.ttl)
        except (RedisError, OSError) as exc:
            logger.error("chat.history.store_failed", extra={"event": "chat.history.store_failed", "error": str(exc)})
            return False
        return True

    async def messages(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent messages, oldest first."""
        try:
            raw = await self.backend.range(self._key(user_id), limit)
        except (RedisError, OSError) as exc:
            logger.error("chat.history.load_failed", extra={"event": "chat.history.load_failed", "error": str(exc)})
            return []
        decoded = []
        for item in raw:
            try:
                decoded.append(json.loads(item))
            except ValueError:
                continue
        decoded.reverse()
        return decoded

    async def recent_turns(self, user_id: str, limit: int = 5) -> list[ConversationTurn]:
        turns = []
        for message in await self.messages(user_id, limit=limit):
            sender = message.get("sender") or {}
            role = "user" if sender.get("type") == "user" else "assistant"
            turns.append(ConversationTurn(role=role, content=str(message.get("message", ""))))
        return turns
