from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
import uuid

import pytest

from supportbot.cache.backend import MemoryCacheBackend
from supportbot.cache.history import ConversationHistory
from supportbot.cache.response_cache import ResponseCache
from supportbot.core.config import get_config
from supportbot.core.exceptions import ProviderError
from supportbot.llm.client import GenerationClient
from supportbot.llm.generator import ResponseGenerator
from supportbot.rag.embeddings.provider import EmbeddingProvider, EmbeddingResult, prepare_input
from supportbot.rag.knowledge.memory_store import InMemoryKnowledgeStore
from supportbot.rag.orchestrator import RAGOrchestrator
from supportbot.rag.retrieval.retriever import ContextRetriever

RETURNS_VECTOR = [1.0, 0.0, 0.0]
SHIPPING_VECTOR = [0.0, 1.0, 0.0]
# cosine 0.8 against RETURNS_VECTOR: between the low (0.75) and high (0.85) thresholds.
TRACKING_VECTOR = [0.8, 0.6, 0.0]
UNRELATED_VECTOR = [0.0, 0.0, 1.0]
# Only the returns entry clears the low threshold, at 0.8.
PARTIAL_RETURNS_VECTOR = [0.8, 0.0, 0.6]

SAMPLE_FAQS = [
    {
        "question": "What is your return policy?",
        "answer": "You can return products within 30 days of purchase for a full refund.",
        "category": "Returns",
        "embedding": RETURNS_VECTOR,
    },
    {
        "question": "How long does shipping take?",
        "answer": "Standard shipping takes 3-5 business days.",
        "category": "Shipping",
        "embedding": SHIPPING_VECTOR,
    },
    {
        "question": "How can I track my order?",
        "answer": "Use the tracking number sent to your email.",
        "category": "Orders",
        "embedding": TRACKING_VECTOR,
    },
]


class FakeEmbedder(EmbeddingProvider):
    model_name = "fake-embedder"
    dimensions = 3

    def __init__(self, vectors=None, default=None, fail_on=()):
        self.vectors = dict(vectors or {})
        self.default = default or UNRELATED_VECTOR
        self.fail_on = set(fail_on)
        self.calls = []

    async def embed(self, text, category=None):
        self.calls.append((text, category))
        if text in self.fail_on:
            raise ProviderError(f"embedding failed for {text!r}")
        vector = self.vectors.get(text, self.default)
        return EmbeddingResult(
            vector=list(vector),
            model_name=self.model_name,
            input_text=prepare_input(text, category),
            original_text=text,
            category=category,
        )


class FakeGenerationClient(GenerationClient):
    model_name = "fake-llm"

    def __init__(self, reply="Here is what I found for you.", error=None, simple_error=None):
        self.reply = reply
        self.error = error
        self.simple_error = simple_error
        self.prompts = []

    async def generate_text(self, prompt):
        self.prompts.append(prompt)
        if self.simple_error is not None and prompt.rstrip().endswith("Assistant:"):
            raise self.simple_error
        if self.error is not None and not prompt.rstrip().endswith("Assistant:"):
            raise self.error
        return self.reply


@pytest.fixture
def test_config():
    return dataclasses.replace(
        get_config(),
        ENV="test",
        GOOGLE_API_KEY=None,
        DATABASE_URL="",
        REDIS_ENABLED=False,
        CACHE_ENABLED=True,
        JWT_SECRET="test-secret",
        LOG_FILE="",
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder(
        vectors={
            "What is your return policy?": RETURNS_VECTOR,
            "Can I return an item?": RETURNS_VECTOR,
            "Can I send it back later?": PARTIAL_RETURNS_VECTOR,
            "When will it arrive?": SHIPPING_VECTOR,
        }
    )


@pytest.fixture
def fake_llm():
    return FakeGenerationClient()


@pytest.fixture
def memory_store():
    store = InMemoryKnowledgeStore(high_threshold=0.85, low_threshold=0.75)
    asyncio.run(store.insert_many(SAMPLE_FAQS))
    return store


@pytest.fixture
def memory_backend():
    return MemoryCacheBackend()


@pytest.fixture
def make_orchestrator(fake_embedder, fake_llm, memory_store, memory_backend):
    """Build an orchestrator; keyword overrides swap single collaborators."""

    def _build(embedder=None, llm=None, store=None, backend=None, cache_enabled=True):
        retriever = ContextRetriever(
            embedder or fake_embedder,
            store or memory_store,
            limit=3,
            threshold=0.75,
        )
        generator = ResponseGenerator(llm or fake_llm)
        cache = ResponseCache(backend or memory_backend)
        return RAGOrchestrator(
            retriever,
            generator,
            cache=cache,
            high_threshold=0.85,
            low_threshold=0.75,
            cache_enabled=cache_enabled,
        )

    return _build


@pytest.fixture
def history(memory_backend):
    return ConversationHistory(memory_backend, ttl=3600, max_messages=100)


@pytest.fixture
def sqlite_url(tmp_path: Path):
    return f"sqlite:///{tmp_path / f'supportbot_test_{uuid.uuid4().hex}.db'}"
