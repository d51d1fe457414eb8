from __future__ import annotations

import asyncio
import dataclasses

import pytest
import requests

from supportbot.cache.history import ConversationTurn
from supportbot.core.exceptions import EmptyResponse, ProviderError, ProviderUnavailable
from supportbot.llm.client import GeminiGenerationClient, UnavailableGenerationClient
from supportbot.llm.generator import ResponseGenerator
from supportbot.llm.prompts import (
    FALLBACK_SYSTEM_PROMPT,
    render_context_block,
    render_history_block,
    render_rag_prompt,
    render_simple_prompt,
)
from supportbot.llm.validators.basic import validate_non_empty_output
from supportbot.rag.knowledge.base import FAQDocument, RetrievalResult


def _hit(question, answer, score):
    return RetrievalResult(
        document=FAQDocument(id=question, question=question, answer=answer, category="Shipping"),
        score=score,
    )


def test_rag_prompt_contains_context_history_and_question():
    prompt = render_rag_prompt(
        "How fast is delivery?",
        [_hit("How long does shipping take?", "3-5 business days.", 0.876)],
        [ConversationTurn("user", "Hello"), ConversationTurn("assistant", "Hi, how can I help?")],
    )

    assert "1. Q: How long does shipping take?" in prompt
    assert "A: 3-5 business days." in prompt
    assert "Relevance: 87.6%" in prompt
    assert "RECENT CONVERSATION:\nCustomer: Hello\nAssistant: Hi, how can I help?" in prompt
    assert prompt.endswith("CUSTOMER QUESTION: How fast is delivery?\n\nRESPONSE:")


def test_rag_prompt_without_context_or_history_omits_sections():
    prompt = render_rag_prompt("Anything?", [], [])
    assert "RELEVANT FAQ CONTEXT" not in prompt
    assert "RECENT CONVERSATION" not in prompt


def test_context_block_keeps_best_match_within_budget():
    context = [_hit("Q1?", "A" * 300, 0.9), _hit("Q2?", "B" * 300, 0.8)]
    block = render_context_block(context, max_length=100)
    assert "Q1?" in block
    assert "Q2?" not in block


def test_history_block_keeps_last_turns():
    turns = [ConversationTurn("user", f"message {index}") for index in range(8)]
    block = render_history_block(turns, max_turns=2)
    assert "message 5" not in block
    assert "message 6" in block and "message 7" in block
    assert render_history_block(turns, max_turns=0) == ""


def test_simple_prompt_uses_system_prompt():
    prompt = render_simple_prompt("Refunds?")
    assert prompt.startswith(FALLBACK_SYSTEM_PROMPT)
    assert prompt.endswith("Customer: Refunds?\n\nAssistant:")


def test_validate_non_empty_output():
    assert validate_non_empty_output("answer") == (True, None)
    assert validate_non_empty_output("   ")[0] is False


def test_generator_strips_output_and_rejects_blank(fake_llm):
    fake_llm.reply = "  Ships in 3 days.  "
    result = asyncio.run(ResponseGenerator(fake_llm).generate("Shipping?", []))
    assert result.answer_text == "Ships in 3 days."
    assert result.model_name == "fake-llm"

    fake_llm.reply = "   "
    with pytest.raises(EmptyResponse):
        asyncio.run(ResponseGenerator(fake_llm).generate("Shipping?", []))


def test_unavailable_generation_client():
    client = UnavailableGenerationClient("GOOGLE_API_KEY is not set.")
    assert client.is_available is False
    with pytest.raises(ProviderUnavailable):
        asyncio.run(client.generate_text("hello"))


class _Response:
    def __init__(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.body


class _Session:
    def __init__(self, responses):
        self.responses = list(responses)
        self.payloads = []

    def post(self, url, params=None, json=None, timeout=None):
        self.payloads.append(json)
        return self.responses.pop(0)


def _client(test_config, responses, retries=0):
    config = dataclasses.replace(
        test_config,
        GOOGLE_API_KEY="key",
        LLM_MAX_RETRIES=retries,
        LLM_MIN_INTERVAL_SECONDS=0,
    )
    session = _Session(responses)
    return GeminiGenerationClient(config, session=session), session


def test_gemini_client_joins_text_parts(test_config):
    body = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there"}]}}]}
    client, session = _client(test_config, [_Response(body)])

    assert asyncio.run(client.generate_text("prompt")) == "Hello there"
    assert session.payloads[0]["contents"][0]["parts"][0]["text"] == "prompt"
    assert session.payloads[0]["generationConfig"]["maxOutputTokens"] == test_config.LLM_MAX_OUTPUT_TOKENS


def test_gemini_client_retries_then_succeeds(test_config, monkeypatch):
    async def no_sleep(delay):
        return None

    monkeypatch.setattr("supportbot.llm.client.asyncio.sleep", no_sleep)
    body = {"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}
    client, session = _client(test_config, [_Response({}, status_code=503), _Response(body)], retries=1)

    assert asyncio.run(client.generate_text("prompt")) == "ok"
    assert len(session.payloads) == 2


def test_gemini_client_raises_after_all_attempts(test_config):
    client, _ = _client(test_config, [_Response({}, status_code=500)])
    with pytest.raises(ProviderError):
        asyncio.run(client.generate_text("prompt"))


def test_gemini_client_without_candidates_yields_empty_text(test_config):
    client, _ = _client(test_config, [_Response({"candidates": []})])
    assert asyncio.run(client.generate_text("prompt")) == ""


@pytest.mark.parametrize(
    "body",
    [
        {"candidates": ["oops"]},
        {"candidates": [{"content": "not an object"}]},
        {"candidates": {"content": {}}},
    ],
)
def test_gemini_client_malformed_body_is_provider_error(test_config, body):
    client, _ = _client(test_config, [_Response(body)])
    with pytest.raises(ProviderError):
        asyncio.run(client.generate_text("prompt"))


def test_malformed_generation_serves_static_faq_answer(test_config, make_orchestrator):
    client, _ = _client(test_config, [_Response({"candidates": ["oops"]})])

    result = asyncio.run(make_orchestrator(llm=client).process_query("What is your return policy?"))

    assert result.type == "static_direct"
    assert result.confidence.level == "high"
    assert result.confidence.score == pytest.approx(1.0)
    assert result.context_used == 2
    assert result.response.startswith("You can return products within 30 days")
