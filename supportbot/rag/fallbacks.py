"""Deterministic answers used when the generator cannot be reached."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from supportbot.rag.confidence import (
    HIGH,
    MEDIUM,
    NO_CONTEXT_STATIC_CONFIDENCE,
    STATIC_ERROR_CONFIDENCE,
    Confidence,
)
from supportbot.rag.knowledge.base import PROVENANCE_VECTOR, RetrievalResult
from supportbot.rag.result import TYPE_STATIC_DIRECT, TYPE_STATIC_FALLBACK, TYPE_STATIC_PARTIAL

NO_CONTEXT_MESSAGE = (
    "I apologize, but I don't have specific information about your question. "
    "Please contact our customer support team for personalized assistance."
)
TECHNICAL_DIFFICULTIES_MESSAGE = (
    "I apologize, but I'm experiencing technical difficulties. "
    "Please contact our customer support team directly for assistance with your question."
)
PARTIAL_MATCH_PREFIX = "Based on our FAQ, here's what I found: "
PARTIAL_MATCH_SUFFIX = (
    "\n\nIf this doesn't fully answer your question, please contact our support team for more specific help."
)

# Keyword relevance has no cosine meaning; hedged keyword answers report the medium tier score.
KEYWORD_MATCH_SCORE = 0.7


@dataclass(frozen=True)
class StaticAnswer:
    text: str
    confidence: Confidence
    type: str


def static_response(context: Sequence[RetrievalResult], high_threshold: float = 0.85) -> StaticAnswer:
    """Answer from the best retrieved FAQ entry without calling the generator."""
    if not context:
        return StaticAnswer(text=NO_CONTEXT_MESSAGE, confidence=NO_CONTEXT_STATIC_CONFIDENCE, type=TYPE_STATIC_FALLBACK)

    best = context[0]
    if best.provenance == PROVENANCE_VECTOR and best.score >= high_threshold:
        return StaticAnswer(
            text=best.answer,
            confidence=Confidence(level=HIGH, score=best.score, reason="Direct FAQ match"),
            type=TYPE_STATIC_DIRECT,
        )

    score = best.score if best.provenance == PROVENANCE_VECTOR else KEYWORD_MATCH_SCORE
    return StaticAnswer(
        text=f"{PARTIAL_MATCH_PREFIX}{best.answer}{PARTIAL_MATCH_SUFFIX}",
        confidence=Confidence(level=MEDIUM, score=score, reason="Partial FAQ match"),
        type=TYPE_STATIC_PARTIAL,
    )


def technical_difficulties() -> StaticAnswer:
    return StaticAnswer(
        text=TECHNICAL_DIFFICULTIES_MESSAGE,
        confidence=STATIC_ERROR_CONFIDENCE,
        type=TYPE_STATIC_FALLBACK,
    )
