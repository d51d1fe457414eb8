"""Embedding + knowledge-store retrieval coordinator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter

from supportbot.core.exceptions import DimensionMismatch, ProviderError, ProviderUnavailable
from supportbot.rag.embeddings.provider import EmbeddingProvider
from supportbot.rag.knowledge.base import KnowledgeStore, RetrievalResult

logger = logging.getLogger(__name__)

METHOD_VECTOR = "vector_search"
METHOD_KEYWORD = "keyword_fallback"
METHOD_FALLBACK = "fallback"
METHOD_ERROR = "error"


@dataclass
class RetrievalOutcome:
    context: list[RetrievalResult] = field(default_factory=list)
    categorized: dict[str, list[RetrievalResult]] = field(default_factory=dict)
    method: str = METHOD_VECTOR
    fallback: bool = False
    error: str | None = None
    elapsed_ms: int = 0

    @property
    def total_found(self) -> int:
        return len(self.context)


class ContextRetriever:
    """Vectorizes the query and asks the store for similar FAQ entries.

    Provider trouble is absorbed into an empty context; it never raises.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        store: KnowledgeStore,
        limit: int = 3,
        threshold: float = 0.75,
    ) -> None:
        self.embedding_provider = embedding_provider
        self.store = store
        self.limit = limit
        self.threshold = threshold

    @property
    def is_available(self) -> bool:
        return self.store.is_available and self.embedding_provider.is_available

    async def retrieve(self, query: str, category: str | None = None) -> RetrievalOutcome:
        started = perf_counter()

        def _elapsed() -> int:
            return int((perf_counter() - started) * 1000)

        if not self.is_available:
            logger.info("rag.retrieval.unavailable", extra={"event": "rag.retrieval.unavailable"})
            return RetrievalOutcome(
                method=METHOD_FALLBACK,
                error="Vector search services not available",
                elapsed_ms=_elapsed(),
            )

        try:
            embedding = await self.embedding_provider.embed(query, category=category)
        except (ProviderUnavailable, ProviderError, DimensionMismatch) as exc:
            logger.warning("rag.retrieval.embedding_failed", extra={"event": "rag.retrieval.embedding_failed", "error": str(exc)})
            return RetrievalOutcome(method=METHOD_ERROR, error=str(exc), elapsed_ms=_elapsed())

        outcome = await self.store.vector_search(
            embedding.vector,
            limit=self.limit,
            threshold=self.threshold,
            category=category,
            query_text=query,
        )
        elapsed = _elapsed()
        logger.info(
            "rag.retrieval.completed",
            extra={
                "event": "rag.retrieval.completed",
                "found": outcome.total_found,
                "fallback": outcome.fallback,
                "elapsed_ms": elapsed,
            },
        )
        return RetrievalOutcome(
            context=outcome.results,
            categorized=outcome.categorized,
            method=METHOD_KEYWORD if outcome.fallback else METHOD_VECTOR,
            fallback=outcome.fallback,
            error=outcome.error,
            elapsed_ms=elapsed,
        )
