"""Transport-agnostic chat handling on top of the RAG orchestrator."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from supportbot.auth.jwt import AuthenticatedUser
from supportbot.cache.history import ConversationHistory
from supportbot.core.exceptions import InvalidMessage
from supportbot.rag.confidence import STATIC_ERROR_CONFIDENCE
from supportbot.rag.orchestrator import RAGOrchestrator
from supportbot.rag.result import RAGResult

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], Awaitable[None]]

STATUS_LOADING_CONTEXT = "loading_context"
STATUS_ERROR = "error"
MAX_MESSAGE_LENGTH = 2000
DEFAULT_ROOM = "general"

PROCESSING_ERROR_MESSAGE = (
    "I apologize, but I'm experiencing technical difficulties processing your question. "
    "Please try again or contact our support team directly for assistance."
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatSession:
    """Stores the exchange in history and turns RAG results into bot messages."""

    def __init__(
        self,
        orchestrator: RAGOrchestrator,
        history: ConversationHistory,
        max_history_turns: int = 5,
    ) -> None:
        self.orchestrator = orchestrator
        self.history = history
        self.max_history_turns = max_history_turns

    async def handle_message(
        self,
        user: AuthenticatedUser,
        payload: dict[str, Any],
        notify: StatusCallback | None = None,
    ) -> dict[str, Any]:
        text = payload.get("message") if isinstance(payload, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise InvalidMessage("Message cannot be empty")
        text = text.strip()
        if len(text) > MAX_MESSAGE_LENGTH:
            raise InvalidMessage(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")

        category = payload.get("category") or None
        message = {
            "id": uuid.uuid4().hex,
            "message": text,
            "sender": {"userId": user.user_id, "email": user.email, "type": "user"},
            "timestamp": _now_iso(),
            "room": payload.get("room") or DEFAULT_ROOM,
        }

        await self._notify(notify, STATUS_LOADING_CONTEXT)
        turns = await self.history.recent_turns(user.user_id, limit=self.max_history_turns)
        await self.history.append(user.user_id, message)

        try:
            result = await self.orchestrator.process_query(
                text,
                user_id=user.user_id,
                category=category,
                history=turns,
                use_cache=True,
                notify=notify,
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("chat.message.failed", extra={"event": "chat.message.failed", "user_id": user.user_id})
            await self._notify(notify, STATUS_ERROR)
            reply = self._error_reply(message)
        else:
            reply = self._bot_reply(message, result)

        await self.history.append(user.user_id, reply)
        return reply

    async def recent_messages(self, user: AuthenticatedUser, limit: int = 20) -> list[dict[str, Any]]:
        return await self.history.messages(user.user_id, limit=limit)

    @staticmethod
    def _bot_reply(message: dict[str, Any], result: RAGResult) -> dict[str, Any]:
        payload = result.to_dict()
        return {
            "id": uuid.uuid4().hex,
            "message": result.response,
            "sender": {
                "type": "bot",
                "name": "AI Assistant (Cached)" if result.cached else "AI Assistant",
                "userId": "bot_rag",
                "model": result.model,
            },
            "timestamp": _now_iso(),
            "originalMessageId": message["id"],
            "room": message["room"],
            "metadata": {
                "confidence": payload["confidence"],
                "contextUsed": payload["contextUsed"],
                "contextSources": payload["contextSources"],
                "cached": result.cached,
                "processingTime": result.processing_time_ms,
                "retrievalTime": result.retrieval_time_ms,
                "generationTime": result.generation_time_ms,
                "ragEnabled": True,
            },
        }

    @staticmethod
    def _error_reply(message: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": uuid.uuid4().hex,
            "message": PROCESSING_ERROR_MESSAGE,
            "sender": {"type": "bot", "name": "Support Assistant (Fallback)", "userId": "bot_fallback"},
            "timestamp": _now_iso(),
            "originalMessageId": message["id"],
            "room": message["room"],
            "metadata": {
                "confidence": {**STATIC_ERROR_CONFIDENCE.to_dict(), "reason": "System error fallback"},
                "contextUsed": 0,
                "cached": False,
                "ragEnabled": False,
                "error": True,
            },
        }

    @staticmethod
    async def _notify(notify: StatusCallback | None, status: str) -> None:
        if notify is not None:
            await notify(status)
