"""Result objects returned by the RAG orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from supportbot.rag.confidence import Confidence
from supportbot.rag.knowledge.base import RetrievalResult

TYPE_RAG = "rag"
TYPE_CACHED = "cached"
TYPE_STATIC_DIRECT = "static_direct"
TYPE_STATIC_PARTIAL = "static_partial"
TYPE_STATIC_FALLBACK = "static_fallback"
TYPE_FALLBACK_LLM = "fallback_llm"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ContextSource:
    question: str
    category: str
    score: float

    @classmethod
    def from_result(cls, item: RetrievalResult) -> "ContextSource":
        return cls(question=item.question, category=item.category, score=item.score)


@dataclass
class RAGResult:
    response: str
    confidence: Confidence
    cached: bool = False
    context_sources: list[ContextSource] = field(default_factory=list)
    retrieval_time_ms: int = 0
    generation_time_ms: int = 0
    processing_time_ms: int = 0
    user_id: str = "anonymous"
    model: str = "n/a"
    type: str = TYPE_RAG
    retrieval_method: str | None = None
    timestamp: str = field(default_factory=_now_iso)

    @property
    def context_used(self) -> int:
        return len(self.context_sources)

    def to_dict(self) -> dict[str, Any]:
        """Wire payload shared by the HTTP and WebSocket transports."""
        return {
            "response": self.response,
            "cached": self.cached,
            "confidence": self.confidence.to_dict(),
            "contextUsed": self.context_used,
            "contextSources": [
                {"question": src.question, "category": src.category, "score": src.score}
                for src in self.context_sources
            ],
            "retrievalTime": self.retrieval_time_ms,
            "generationTime": self.generation_time_ms,
            "processingTime": self.processing_time_ms,
            "userId": self.user_id,
            "timestamp": self.timestamp,
            "model": self.model,
            "type": self.type,
            "retrievalMethod": self.retrieval_method,
        }
