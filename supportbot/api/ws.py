"""WebSocket chat transport."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from supportbot.auth.jwt import AuthenticatedUser, verify_bearer
from supportbot.chat.session import ChatSession
from supportbot.core.dependencies import Services
from supportbot.core.exceptions import AuthenticationError, InvalidMessage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])

POLICY_VIOLATION = 1008


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("ws.answer.failed", extra={"event": "ws.answer.failed", "error": str(exc)})


async def _answer(websocket: WebSocket, session: ChatSession, user: AuthenticatedUser, data: dict[str, Any]) -> None:
    async def notify(stage: str) -> None:
        await websocket.send_json({"event": "messageProcessing", "status": stage, "timestamp": _now_iso()})

    try:
        reply = await session.handle_message(user, data, notify=notify)
    except InvalidMessage as exc:
        await websocket.send_json(
            {"event": "messageError", "error": str(exc), "code": "INVALID_MESSAGE", "timestamp": _now_iso()}
        )
        return

    await websocket.send_json({"event": "chatbotResponse", **reply})
    metadata = reply["metadata"]
    await websocket.send_json(
        {
            "event": "responseConfidence",
            "messageId": reply["originalMessageId"],
            "confidence": metadata["confidence"],
            "contextUsed": metadata["contextUsed"],
            "sources": metadata.get("contextSources", []),
            "processingTime": metadata.get("processingTime"),
        }
    )


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket, token: str | None = Query(default=None)) -> None:
    services: Services = websocket.app.state.services
    try:
        user = verify_bearer(token, secret=services.config.JWT_SECRET)
    except AuthenticationError as exc:
        logger.info("ws.auth.rejected", extra={"event": "ws.auth.rejected", "error": str(exc)})
        await websocket.close(code=POLICY_VIOLATION, reason="Authentication failed")
        return

    await websocket.accept()
    await websocket.send_json({"event": "authenticated", "userId": user.user_id, "email": user.email})
    session = ChatSession(services.orchestrator, services.history, max_history_turns=services.config.MAX_HISTORY_TURNS)
    in_flight: set[asyncio.Task] = set()

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                await websocket.send_json({"event": "messageError", "error": "Invalid JSON", "code": "BAD_PAYLOAD"})
                continue
            if not isinstance(data, dict):
                await websocket.send_json({"event": "messageError", "error": "Expected an object", "code": "BAD_PAYLOAD"})
                continue

            event = data.get("event", "sendMessage")
            if event == "ping":
                await websocket.send_json({"event": "pong", "timestamp": _now_iso()})
            elif event == "getHistory":
                limit = data.get("limit")
                limit = limit if isinstance(limit, int) and 0 < limit <= 100 else 20
                messages = await session.recent_messages(user, limit=limit)
                await websocket.send_json({"event": "messageHistory", "messages": messages, "count": len(messages)})
            elif event == "sendMessage":
                task = asyncio.create_task(_answer(websocket, session, user, data))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
                task.add_done_callback(_log_task_failure)
            else:
                await websocket.send_json({"event": "messageError", "error": f"Unknown event {event}", "code": "UNKNOWN_EVENT"})
    except WebSocketDisconnect:
        logger.info("ws.disconnected", extra={"event": "ws.disconnected", "user_id": user.user_id})
    finally:
        # Queries of a gone client must not keep provider calls running.
        for task in list(in_flight):
            task.cancel()
