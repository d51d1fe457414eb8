"""Confidence tiers derived from retrieved-context quality."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass

from supportbot.rag.knowledge.base import PROVENANCE_VECTOR, RetrievalResult

HIGH = "high"
MEDIUM = "medium"
LOW = "low"
CACHED = "cached"


@dataclass(frozen=True)
class Confidence:
    level: str
    score: float
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


CACHED_CONFIDENCE = Confidence(level=CACHED, score=1.0, reason="Served from response cache")
FALLBACK_LLM_CONFIDENCE = Confidence(level=LOW, score=0.4, reason="Fallback LLM response")
STATIC_ERROR_CONFIDENCE = Confidence(level=LOW, score=0.1, reason="Static fallback")
NO_CONTEXT_STATIC_CONFIDENCE = Confidence(level=LOW, score=0.2, reason="No relevant context found")


def classify_confidence(
    context: Sequence[RetrievalResult],
    high_threshold: float = 0.85,
    low_threshold: float = 0.75,
) -> Confidence:
    """Tier the answer by its best supporting context, regardless of who wrote the text."""
    if not context:
        return Confidence(level=LOW, score=0.3, reason="No relevant context found")

    # Keyword relevance is not on the cosine scale: those hits are medium by convention.
    vector_hits = [item for item in context if item.provenance == PROVENANCE_VECTOR]
    keyword_hits = [item for item in context if item.provenance != PROVENANCE_VECTOR]

    high = [item for item in vector_hits if item.score >= high_threshold]
    if high:
        return Confidence(level=HIGH, score=0.9, reason=f"Found {len(high)} high-confidence matches")

    medium = keyword_hits + [item for item in vector_hits if low_threshold <= item.score < high_threshold]
    if medium:
        return Confidence(level=MEDIUM, score=0.7, reason=f"Found {len(medium)} medium-confidence matches")

    return Confidence(level=LOW, score=0.5, reason="Only low-confidence matches found")
