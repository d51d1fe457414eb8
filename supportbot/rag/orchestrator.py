"""RAG orchestrator: cache check, retrieval, generation, confidence and cache write-back."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from time import perf_counter
from typing import Any

from supportbot.cache.history import ConversationTurn
from supportbot.cache.response_cache import ResponseCache
from supportbot.core.exceptions import ProviderError, ProviderUnavailable
from supportbot.llm.generator import ResponseGenerator
from supportbot.rag.confidence import (
    CACHED_CONFIDENCE,
    FALLBACK_LLM_CONFIDENCE,
    HIGH,
    Confidence,
    classify_confidence,
)
from supportbot.rag.fallbacks import static_response, technical_difficulties
from supportbot.rag.knowledge.base import RetrievalResult
from supportbot.rag.result import TYPE_CACHED, TYPE_FALLBACK_LLM, TYPE_RAG, ContextSource, RAGResult
from supportbot.rag.retrieval.retriever import ContextRetriever

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], Awaitable[None]]

STAGE_CHECKING_CACHE = "checking_cache"
STAGE_SEARCHING_KNOWLEDGE = "searching_knowledge"
STAGE_GENERATING_RESPONSE = "generating_response"

DEFAULT_TEST_QUERIES = (
    "How long does shipping take?",
    "What is your return policy?",
    "How can I track my order?",
)


def _elapsed_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)


class RAGOrchestrator:
    """Turns a customer query into a grounded, confidence-scored answer.

    Holds no per-call state; every collaborator is injected. The public
    entry point always returns a RAGResult, only task cancellation escapes.
    """

    def __init__(
        self,
        retriever: ContextRetriever,
        generator: ResponseGenerator,
        cache: ResponseCache | None = None,
        high_threshold: float = 0.85,
        low_threshold: float = 0.75,
        cache_enabled: bool = True,
    ) -> None:
        self.retriever = retriever
        self.generator = generator
        self.cache = cache
        self.high_threshold = high_threshold
        self.low_threshold = low_threshold
        self.cache_enabled = cache_enabled and cache is not None

    async def process_query(
        self,
        query: str,
        user_id: str = "anonymous",
        category: str | None = None,
        history: Sequence[ConversationTurn] | None = None,
        use_cache: bool = True,
        notify: StatusCallback | None = None,
    ) -> RAGResult:
        started = perf_counter()
        try:
            return await self._run_pipeline(query, user_id, category, history or (), use_cache, notify, started)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("rag.query.failed", extra={"event": "rag.query.failed", "user_id": user_id})
            return await self._error_fallback(query, user_id, started)

    async def _run_pipeline(
        self,
        query: str,
        user_id: str,
        category: str | None,
        history: Sequence[ConversationTurn],
        use_cache: bool,
        notify: StatusCallback | None,
        started: float,
    ) -> RAGResult:
        logger.info(
            "rag.query.started",
            extra={"event": "rag.query.started", "user_id": user_id, "query": query[:100], "category": category},
        )
        caching = use_cache and self.cache_enabled

        if caching:
            await self._notify(notify, STAGE_CHECKING_CACHE)
            cached = await self.cache.get(query)
            if cached is not None:
                logger.info("rag.cache.hit", extra={"event": "rag.cache.hit", "user_id": user_id})
                return RAGResult(
                    response=cached.answer,
                    confidence=CACHED_CONFIDENCE,
                    cached=True,
                    processing_time_ms=_elapsed_ms(started),
                    user_id=user_id,
                    model=str(cached.metadata.get("model", "cache")),
                    type=TYPE_CACHED,
                )

        await self._notify(notify, STAGE_SEARCHING_KNOWLEDGE)
        retrieval = await self.retriever.retrieve(query, category=category)

        await self._notify(notify, STAGE_GENERATING_RESPONSE)
        generation_started = perf_counter()
        answer, confidence, model, result_type = await self._generate(query, retrieval.context, history)
        generation_ms = _elapsed_ms(generation_started)

        if caching and confidence.level == HIGH:
            await self.cache.put(query, answer, metadata={"model": model, "user_id": user_id})

        result = RAGResult(
            response=answer,
            confidence=confidence,
            context_sources=[ContextSource.from_result(item) for item in retrieval.context],
            retrieval_time_ms=retrieval.elapsed_ms,
            generation_time_ms=generation_ms,
            processing_time_ms=_elapsed_ms(started),
            user_id=user_id,
            model=model,
            type=result_type,
            retrieval_method=retrieval.method,
        )
        logger.info(
            "rag.query.completed",
            extra={
                "event": "rag.query.completed",
                "user_id": user_id,
                "confidence": confidence.level,
                "context_used": result.context_used,
                "processing_time_ms": result.processing_time_ms,
            },
        )
        return result

    async def _generate(
        self,
        query: str,
        context: list[RetrievalResult],
        history: Sequence[ConversationTurn],
    ) -> tuple[str, Confidence, str, str]:
        if self.generator.is_available:
            try:
                generated = await self.generator.generate(query, context, history)
            except (ProviderUnavailable, ProviderError) as exc:
                logger.warning("rag.generation.failed", extra={"event": "rag.generation.failed", "error": str(exc)})
            else:
                confidence = classify_confidence(context, self.high_threshold, self.low_threshold)
                return generated.answer_text, confidence, generated.model_name, TYPE_RAG
        else:
            logger.info("rag.generation.unavailable", extra={"event": "rag.generation.unavailable"})

        static = static_response(context, high_threshold=self.high_threshold)
        return static.text, static.confidence, static.type, static.type

    async def _error_fallback(self, query: str, user_id: str, started: float) -> RAGResult:
        if self.generator.is_available:
            try:
                generated = await self.generator.generate_simple(query)
                return RAGResult(
                    response=generated.answer_text,
                    confidence=FALLBACK_LLM_CONFIDENCE,
                    processing_time_ms=_elapsed_ms(started),
                    user_id=user_id,
                    model=generated.model_name,
                    type=TYPE_FALLBACK_LLM,
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("rag.fallback_llm.failed", extra={"event": "rag.fallback_llm.failed", "error": str(exc)})

        static = technical_difficulties()
        return RAGResult(
            response=static.text,
            confidence=static.confidence,
            processing_time_ms=_elapsed_ms(started),
            user_id=str(user_id),
            model=static.type,
            type=static.type,
        )

    @staticmethod
    async def _notify(notify: StatusCallback | None, stage: str) -> None:
        if notify is None:
            return
        try:
            await notify(stage)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("rag.notify.failed", extra={"event": "rag.notify.failed", "stage": stage, "error": str(exc)})

    async def stats(self) -> dict[str, Any]:
        """Configuration, provider state and derived capabilities."""
        cache_backend = await self.cache.backend.describe() if self.cache is not None else None
        return {
            "config": {
                "similarity_threshold_high": self.high_threshold,
                "similarity_threshold_low": self.low_threshold,
                "max_retrieval_results": self.retriever.limit,
                "cache_enabled": self.cache_enabled,
            },
            "services": {
                "knowledge_store": await self.retriever.store.describe(),
                "embedding": self.retriever.embedding_provider.describe(),
                "generation": self.generator.client.describe(),
                "cache": cache_backend,
            },
            "capabilities": {
                "vector_search": self.retriever.is_available,
                "llm_generation": self.generator.is_available,
                "caching": self.cache_enabled,
                "fallback_responses": True,
            },
        }

    async def test_pipeline(self, queries: Sequence[str] = DEFAULT_TEST_QUERIES) -> dict[str, Any]:
        """Smoke-run the pipeline with caching disabled."""
        results = []
        for query in queries:
            outcome = await self.process_query(query, user_id="test_user", use_cache=False)
            results.append(
                {
                    "query": query,
                    "success": bool(outcome.response),
                    "response": outcome.response[:100],
                    "confidence": outcome.confidence.to_dict(),
                    "context_used": outcome.context_used,
                    "processing_time_ms": outcome.processing_time_ms,
                }
            )
        successful = sum(1 for item in results if item["success"])
        return {
            "total_tests": len(results),
            "successful": successful,
            "failed": len(results) - successful,
            "results": results,
        }
