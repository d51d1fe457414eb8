"""Service construction and dependency providers for API handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status

from supportbot.auth.jwt import AuthenticatedUser, verify_bearer
from supportbot.cache.backend import CacheBackend, MemoryCacheBackend, RedisCacheBackend
from supportbot.cache.history import ConversationHistory
from supportbot.cache.response_cache import ResponseCache
from supportbot.core.config import Config
from supportbot.core.exceptions import AuthenticationError
from supportbot.database.db import build_engine, verify_database_connection
from supportbot.llm.client import GeminiGenerationClient, GenerationClient, UnavailableGenerationClient
from supportbot.llm.generator import ResponseGenerator
from supportbot.rag.embeddings.gemini_embedder import GeminiEmbedder
from supportbot.rag.embeddings.provider import EmbeddingProvider, UnavailableEmbeddingProvider
from supportbot.rag.knowledge.base import KnowledgeStore
from supportbot.rag.knowledge.sql_store import SQLKnowledgeStore
from supportbot.rag.knowledge.unavailable import UnavailableKnowledgeStore
from supportbot.rag.orchestrator import RAGOrchestrator
from supportbot.rag.retrieval.retriever import ContextRetriever

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """Everything a request handler needs, built once at startup."""

    config: Config
    embedding_provider: EmbeddingProvider
    generation_client: GenerationClient
    knowledge_store: KnowledgeStore
    cache_backend: CacheBackend
    response_cache: ResponseCache
    history: ConversationHistory
    orchestrator: RAGOrchestrator


def build_embedding_provider(config: Config) -> EmbeddingProvider:
    if not config.GOOGLE_API_KEY:
        return UnavailableEmbeddingProvider("GOOGLE_API_KEY is not set.", dimensions=config.EMBEDDING_DIMENSIONS)
    return GeminiEmbedder(config)


def build_generation_client(config: Config) -> GenerationClient:
    if not config.GOOGLE_API_KEY:
        return UnavailableGenerationClient("GOOGLE_API_KEY is not set.")
    return GeminiGenerationClient(config)


def build_knowledge_store(config: Config) -> KnowledgeStore:
    if not config.has_database:
        return UnavailableKnowledgeStore("DATABASE_URL is not set.")
    engine = build_engine(config.DATABASE_URL, echo=config.DEBUG and config.LOG_LEVEL == "DEBUG")
    if not verify_database_connection(engine):
        return UnavailableKnowledgeStore("Database is unreachable.")
    store = SQLKnowledgeStore(
        engine,
        high_threshold=config.SIMILARITY_THRESHOLD_HIGH,
        low_threshold=config.SIMILARITY_THRESHOLD_LOW,
        dimensions=config.EMBEDDING_DIMENSIONS,
    )
    store.create_schema()
    return store


async def connect_cache_backend(config: Config) -> CacheBackend:
    """Redis when enabled and reachable, otherwise the in-process map."""
    if not config.REDIS_ENABLED:
        logger.info("cache.redis.disabled", extra={"event": "cache.redis.disabled"})
        return MemoryCacheBackend()
    backend = RedisCacheBackend.from_url(config.REDIS_URL)
    if await backend.ping():
        return backend
    await backend.close()
    logger.warning("cache.redis.unreachable_using_memory", extra={"event": "cache.redis.unreachable_using_memory"})
    return MemoryCacheBackend()


def build_orchestrator(
    config: Config,
    embedding_provider: EmbeddingProvider,
    generation_client: GenerationClient,
    knowledge_store: KnowledgeStore,
    response_cache: ResponseCache | None,
) -> RAGOrchestrator:
    retriever = ContextRetriever(
        embedding_provider,
        knowledge_store,
        limit=config.MAX_RETRIEVAL_RESULTS,
        threshold=config.SIMILARITY_THRESHOLD_LOW,
    )
    generator = ResponseGenerator(
        generation_client,
        max_history_turns=config.MAX_HISTORY_TURNS,
        max_context_length=config.MAX_CONTEXT_LENGTH,
    )
    return RAGOrchestrator(
        retriever,
        generator,
        cache=response_cache,
        high_threshold=config.SIMILARITY_THRESHOLD_HIGH,
        low_threshold=config.SIMILARITY_THRESHOLD_LOW,
        cache_enabled=config.CACHE_ENABLED,
    )


async def build_services(
    config: Config,
    knowledge_store: KnowledgeStore | None = None,
    cache_backend: CacheBackend | None = None,
    embedding_provider: EmbeddingProvider | None = None,
    generation_client: GenerationClient | None = None,
) -> Services:
    """Select every provider variant once; explicit arguments override selection."""
    embedding_provider = embedding_provider or build_embedding_provider(config)
    generation_client = generation_client or build_generation_client(config)
    knowledge_store = knowledge_store or build_knowledge_store(config)
    cache_backend = cache_backend or await connect_cache_backend(config)
    response_cache = ResponseCache(cache_backend, default_ttl=config.CACHE_RESPONSE_TTL)
    history = ConversationHistory(
        cache_backend,
        ttl=config.CACHE_MESSAGE_TTL,
        max_messages=config.MESSAGE_HISTORY_LIMIT,
    )
    orchestrator = build_orchestrator(config, embedding_provider, generation_client, knowledge_store, response_cache)
    return Services(
        config=config,
        embedding_provider=embedding_provider,
        generation_client=generation_client,
        knowledge_store=knowledge_store,
        cache_backend=cache_backend,
        response_cache=response_cache,
        history=history,
        orchestrator=orchestrator,
    )


def get_services(request: Request) -> Services:
    """Return the container attached to the running application."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Services are not initialized.")
    return services


def get_current_user(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> AuthenticatedUser:
    """Resolve current user from the bearer token."""
    try:
        return verify_bearer(authorization, secret=services.config.JWT_SECRET)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
