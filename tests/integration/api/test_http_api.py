from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from supportbot.auth.jwt import create_access_token
from supportbot.cache.backend import MemoryCacheBackend
from supportbot.core.dependencies import build_services
from supportbot.main import create_app
from supportbot.rag.knowledge.unavailable import UnavailableKnowledgeStore


@pytest.fixture
def services(test_config, memory_store, fake_embedder, fake_llm):
    return asyncio.run(
        build_services(
            test_config,
            knowledge_store=memory_store,
            cache_backend=MemoryCacheBackend(),
            embedding_provider=fake_embedder,
            generation_client=fake_llm,
        )
    )


@pytest.fixture
def client(services):
    with TestClient(create_app(services=services)) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(test_config):
    token = create_access_token("user-1", "user@example.com", secret=test_config.JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "SupportBot"

    health = client.get("/api/v1/health").json()
    assert health["status"] == "ok"
    assert health["capabilities"] == {"vector_search": True, "llm_generation": True, "caching": True}


def test_chat_requires_bearer_token(client):
    response = client.post("/api/v1/chat", json={"message": "What is your return policy?"})
    assert response.status_code == 401


def test_chat_answers_with_confidence(client, auth_headers):
    response = client.post("/api/v1/chat", json={"message": "What is your return policy?"}, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["confidence"]["level"] == "high"
    assert body["contextUsed"] == 2
    assert body["userId"] == "user-1"
    assert body["contextSources"][0]["category"] == "Returns"

    replay = client.post("/api/v1/chat", json={"message": "what is your return policy?"}, headers=auth_headers)
    assert replay.json()["cached"] is True


def test_chat_rejects_blank_message(client, auth_headers):
    response = client.post("/api/v1/chat", json={"message": "   "}, headers=auth_headers)
    assert response.status_code == 422


def test_faq_lifecycle(client, auth_headers):
    created = client.post(
        "/api/v1/faqs",
        json={"question": "Do you sell gift cards?", "answer": "Yes, from $10.", "category": "Payment"},
        headers=auth_headers,
    )
    assert created.status_code == 201
    faq = created.json()
    assert faq["has_embedding"] is True

    assert client.get(f"/api/v1/faqs/{faq['id']}").json()["answer"] == "Yes, from $10."
    assert "Payment" in client.get("/api/v1/faqs/categories").json()["categories"]

    assert client.delete(f"/api/v1/faqs/{faq['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/v1/faqs/{faq['id']}").status_code == 404


def test_faq_without_store_is_unavailable(test_config, fake_embedder, fake_llm, auth_headers):
    services = asyncio.run(
        build_services(
            test_config,
            knowledge_store=UnavailableKnowledgeStore("DATABASE_URL is not set."),
            cache_backend=MemoryCacheBackend(),
            embedding_provider=fake_embedder,
            generation_client=fake_llm,
        )
    )
    with TestClient(create_app(services=services)) as client:
        response = client.post("/api/v1/faqs", json={"question": "Gift cards?", "answer": "Yes."}, headers=auth_headers)
        assert response.status_code == 503
        assert client.get("/api/v1/faqs/categories").json() == {"categories": [], "count": 0}


def test_rag_stats_and_smoke_test(client, auth_headers):
    stats = client.get("/api/v1/rag/stats", headers=auth_headers).json()
    assert stats["capabilities"]["llm_generation"] is True
    assert stats["config"]["similarity_threshold_high"] == 0.85

    report = client.post("/api/v1/rag/test", headers=auth_headers).json()
    assert report["total_tests"] == 3
    assert report["failed"] == 0
