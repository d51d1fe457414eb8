"""Cosine similarity scoring shared by retrieval and re-ranking."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from math import sqrt
from typing import TypeVar

from supportbot.core.exceptions import DimensionMismatch, ZeroVector

T = TypeVar("T")


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Return dot(a, b) / (|a| * |b|).

    Raises DimensionMismatch for vectors of different length and ZeroVector
    when either side has zero norm; both indicate corrupted embeddings upstream.
    """
    if len(a) != len(b):
        raise DimensionMismatch(f"Cannot compare vectors of length {len(a)} and {len(b)}.")
    if not a:
        raise ZeroVector("Cannot score empty vectors.")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        raise ZeroVector("Cosine similarity is undefined for a zero vector.")
    # Clamp float drift so identical vectors never report 1.0000000002.
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def top_k(
    query: Sequence[float],
    candidates: Sequence[T],
    k: int,
    threshold: float,
    vector_of: Callable[[T], Sequence[float]] = lambda item: item,  # type: ignore[assignment, return-value]
) -> list[tuple[T, float]]:
    """Score candidates against query, keep score >= threshold, best first.

    sorted() is stable, so equal scores keep their input order.
    """
    if k <= 0:
        return []
    scored = [(candidate, cosine(query, vector_of(candidate))) for candidate in candidates]
    kept = [item for item in scored if item[1] >= threshold]
    kept.sort(key=lambda item: item[1], reverse=True)
    return kept[:k]
