"""Knowledge store contract: vector search with a single keyword-search fallback hop."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from supportbot.core.exceptions import DimensionMismatch
from supportbot.rag.similarity import top_k

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"
PROVENANCE_VECTOR = "vector"
PROVENANCE_KEYWORD = "keyword-fallback"

_WORD_RE = re.compile(r"[a-z0-9]+")


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp helper."""
    return datetime.now(timezone.utc)


@dataclass
class FAQDocument:
    id: str
    question: str
    answer: str
    category: str = DEFAULT_CATEGORY
    embedding: list[float] | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self, include_embedding: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "category": self.category,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if include_embedding:
            payload["embedding"] = self.embedding
        return payload


@dataclass(frozen=True)
class RetrievalResult:
    document: FAQDocument
    score: float
    provenance: str = PROVENANCE_VECTOR

    @property
    def question(self) -> str:
        return self.document.question

    @property
    def answer(self) -> str:
        return self.document.answer

    @property
    def category(self) -> str:
        return self.document.category


@dataclass
class SearchOutcome:
    results: list[RetrievalResult] = field(default_factory=list)
    categorized: dict[str, list[RetrievalResult]] = field(
        default_factory=lambda: {"high": [], "medium": [], "low": []}
    )
    fallback: bool = False
    error: str | None = None

    @property
    def total_found(self) -> int:
        return len(self.results)

    @property
    def has_high_confidence(self) -> bool:
        return bool(self.categorized["high"])

    @property
    def has_medium_confidence(self) -> bool:
        return bool(self.categorized["medium"])


def tokenize(text: str) -> list[str]:
    """Lowercase words of three or more characters."""
    return [word for word in _WORD_RE.findall(text.lower()) if len(word) > 2]


def keyword_score(query_terms: Sequence[str], document: FAQDocument) -> float:
    """Relevance of a document for keyword search; question hits weigh double."""
    question_terms = set(tokenize(document.question))
    body_terms = set(tokenize(document.answer)) | set(tokenize(document.category))
    score = 0.0
    for term in set(query_terms):
        if term in question_terms:
            score += 2.0
        elif term in body_terms:
            score += 1.0
    return score


class KnowledgeStore(ABC):
    """Contract for FAQ document stores with vector similarity search."""

    name = "knowledge-store"

    def __init__(
        self,
        high_threshold: float = 0.85,
        low_threshold: float = 0.75,
        dimensions: int | None = None,
    ) -> None:
        self.high_threshold = high_threshold
        self.low_threshold = low_threshold
        self.dimensions = dimensions

    @property
    def is_available(self) -> bool:
        return True

    def _checked_embedding(self, embedding: Sequence[float] | None) -> list[float] | None:
        """Drop embeddings of the wrong size or zero norm; such rows stay keyword-searchable."""
        if not embedding:
            return None
        vector = [float(value) for value in embedding]
        wrong_size = self.dimensions is not None and len(vector) != self.dimensions
        if wrong_size or not any(vector):
            logger.warning(
                "knowledge.embedding.dropped",
                extra={
                    "event": "knowledge.embedding.dropped",
                    "store": self.name,
                    "dimensions": len(vector),
                    "expected": self.dimensions,
                },
            )
            return None
        return vector

    def _rank_embedded(
        self,
        query_vector: Sequence[float],
        documents: Sequence[FAQDocument],
        num_candidates: int,
    ) -> list[tuple[FAQDocument, float]]:
        """Cosine-rank documents, skipping rows whose embedding cannot be compared with the query.

        Raises DimensionMismatch only when no stored embedding matches the query size.
        """
        usable = []
        skipped = []
        for document in documents:
            vector = document.embedding or []
            if len(vector) == len(query_vector) and any(vector):
                usable.append(document)
            else:
                skipped.append(document.id)
        if skipped:
            logger.warning(
                "knowledge.vector_search.skipped",
                extra={"event": "knowledge.vector_search.skipped", "store": self.name, "faq_ids": skipped[:20], "count": len(skipped)},
            )
        if documents and not usable:
            raise DimensionMismatch(f"No stored embedding has {len(query_vector)} dimensions.")
        return top_k(
            query_vector,
            usable,
            k=num_candidates,
            threshold=-1.0,
            vector_of=lambda doc: doc.embedding or [],
        )

    async def vector_search(
        self,
        query_vector: Sequence[float],
        limit: int,
        threshold: float,
        category: str | None = None,
        query_text: str = "",
    ) -> SearchOutcome:
        """Rank documents by cosine similarity; fall back to keyword search on any failure."""
        try:
            # Oversample before the exact threshold/category filter to keep recall.
            candidates = await self._vector_candidates(query_vector, num_candidates=limit * 10)
            kept = [
                (document, score)
                for document, score in candidates
                if score >= threshold and (category is None or document.category == category)
            ]
            kept.sort(key=lambda item: item[1], reverse=True)
            results = [RetrievalResult(document=doc, score=score) for doc, score in kept[:limit]]
        except Exception as exc:
            logger.warning(
                "knowledge.vector_search.failed",
                extra={"event": "knowledge.vector_search.failed", "store": self.name, "error": str(exc)},
            )
            return await self.text_search_fallback(query_text, limit=limit, category=category)

        logger.info(
            "knowledge.vector_search.completed",
            extra={"event": "knowledge.vector_search.completed", "found": len(results), "threshold": threshold},
        )
        return SearchOutcome(results=results, categorized=self._categorize(results, threshold))

    async def text_search_fallback(self, query_text: str, limit: int, category: str | None = None) -> SearchOutcome:
        """Keyword search; engine-native scores, every hit classified medium."""
        try:
            hits = await self._keyword_candidates(query_text, limit=limit, category=category)
        except Exception as exc:
            logger.error(
                "knowledge.text_search.failed",
                extra={"event": "knowledge.text_search.failed", "store": self.name, "error": str(exc)},
            )
            return SearchOutcome(fallback=True, error=str(exc))

        results = [
            RetrievalResult(document=doc, score=score, provenance=PROVENANCE_KEYWORD)
            for doc, score in hits[:limit]
        ]
        logger.info(
            "knowledge.text_search.completed",
            extra={"event": "knowledge.text_search.completed", "found": len(results)},
        )
        return SearchOutcome(
            results=results,
            categorized={"high": [], "medium": list(results), "low": []},
            fallback=True,
        )

    def _categorize(self, results: list[RetrievalResult], threshold: float) -> dict[str, list[RetrievalResult]]:
        high = max(self.high_threshold, threshold)
        return {
            "high": [item for item in results if item.score >= high],
            "medium": [item for item in results if threshold <= item.score < high],
            "low": [item for item in results if item.score < threshold],
        }

    @abstractmethod
    async def _vector_candidates(
        self, query_vector: Sequence[float], num_candidates: int
    ) -> list[tuple[FAQDocument, float]]:
        """Return up to num_candidates (document, cosine) pairs, best first."""
        raise NotImplementedError

    @abstractmethod
    async def _keyword_candidates(
        self, query_text: str, limit: int, category: str | None
    ) -> list[tuple[FAQDocument, float]]:
        """Return keyword hits (document, relevance), best first."""
        raise NotImplementedError

    @abstractmethod
    async def insert_faq(
        self,
        question: str,
        answer: str,
        category: str | None = None,
        embedding: list[float] | None = None,
    ) -> FAQDocument:
        raise NotImplementedError

    async def insert_many(self, faqs: Sequence[dict[str, Any]]) -> list[FAQDocument]:
        inserted = []
        for faq in faqs:
            inserted.append(
                await self.insert_faq(
                    question=faq["question"],
                    answer=faq["answer"],
                    category=faq.get("category"),
                    embedding=faq.get("embedding"),
                )
            )
        return inserted

    @abstractmethod
    async def get_faq(self, faq_id: str) -> FAQDocument | None:
        raise NotImplementedError

    @abstractmethod
    async def update_faq(self, faq_id: str, **changes: Any) -> FAQDocument | None:
        raise NotImplementedError

    @abstractmethod
    async def delete_faq(self, faq_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def categories(self) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        raise NotImplementedError

    async def describe(self) -> dict[str, Any]:
        return {
            "available": self.is_available,
            "store": self.name,
            "total_documents": await self.count(),
            "categories": await self.categories(),
        }
