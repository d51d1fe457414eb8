from __future__ import annotations

import asyncio

import pytest

from supportbot.auth.jwt import AuthenticatedUser
from supportbot.chat.session import PROCESSING_ERROR_MESSAGE, STATUS_ERROR, STATUS_LOADING_CONTEXT, ChatSession
from supportbot.core.exceptions import InvalidMessage

USER = AuthenticatedUser(user_id="user-1", email="user@example.com")


def test_message_and_reply_are_stored(make_orchestrator, history):
    session = ChatSession(make_orchestrator(), history)
    stages = []

    async def notify(stage):
        stages.append(stage)

    reply = asyncio.run(session.handle_message(USER, {"message": " What is your return policy? "}, notify=notify))

    assert reply["sender"]["type"] == "bot"
    assert reply["metadata"]["confidence"]["level"] == "high"
    assert reply["metadata"]["contextUsed"] == 2
    assert reply["room"] == "general"
    assert stages[0] == STATUS_LOADING_CONTEXT

    stored = asyncio.run(session.recent_messages(USER))
    assert [item["sender"]["type"] for item in stored] == ["user", "bot"]
    assert stored[0]["message"] == "What is your return policy?"
    assert stored[1]["originalMessageId"] == stored[0]["id"]


def test_previous_turns_feed_the_prompt(make_orchestrator, history, fake_llm):
    session = ChatSession(make_orchestrator(), history)
    asyncio.run(session.handle_message(USER, {"message": "What is your return policy?"}))
    asyncio.run(session.handle_message(USER, {"message": "When will it arrive?"}))

    prompt = fake_llm.prompts[-1]
    assert "Customer: What is your return policy?" in prompt
    # The current message is not repeated as history.
    assert "Customer: When will it arrive?" not in prompt


@pytest.mark.parametrize("payload", [{}, {"message": "   "}, {"message": 42}, {"message": "x" * 2001}])
def test_invalid_messages_are_rejected(make_orchestrator, history, payload):
    session = ChatSession(make_orchestrator(), history)
    with pytest.raises(InvalidMessage):
        asyncio.run(session.handle_message(USER, payload))
    assert asyncio.run(session.recent_messages(USER)) == []


def test_orchestrator_crash_yields_error_reply(make_orchestrator, history, monkeypatch):
    orchestrator = make_orchestrator()

    async def crash(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator, "process_query", crash)
    stages = []

    async def notify(stage):
        stages.append(stage)

    reply = asyncio.run(ChatSession(orchestrator, history).handle_message(USER, {"message": "Hi"}, notify=notify))

    assert reply["message"] == PROCESSING_ERROR_MESSAGE
    assert reply["metadata"]["confidence"] == {"level": "low", "score": 0.1, "reason": "System error fallback"}
    assert stages[-1] == STATUS_ERROR
