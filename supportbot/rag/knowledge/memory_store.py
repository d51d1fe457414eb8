"""In-process knowledge store used for tests and database-less development."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from supportbot.core.exceptions import KnowledgeStoreError
from supportbot.rag.knowledge.base import (
    DEFAULT_CATEGORY,
    FAQDocument,
    KnowledgeStore,
    keyword_score,
    tokenize,
    utcnow,
)

_MUTABLE_FIELDS = {"question", "answer", "category", "embedding"}


class InMemoryKnowledgeStore(KnowledgeStore):
    """List-backed store; insertion order breaks score ties."""

    name = "memory"

    def __init__(
        self,
        high_threshold: float = 0.85,
        low_threshold: float = 0.75,
        dimensions: int | None = None,
    ) -> None:
        super().__init__(high_threshold=high_threshold, low_threshold=low_threshold, dimensions=dimensions)
        self._documents: list[FAQDocument] = []

    async def _vector_candidates(
        self, query_vector: Sequence[float], num_candidates: int
    ) -> list[tuple[FAQDocument, float]]:
        embedded = [doc for doc in self._documents if doc.embedding]
        return self._rank_embedded(query_vector, embedded, num_candidates)

    async def _keyword_candidates(
        self, query_text: str, limit: int, category: str | None
    ) -> list[tuple[FAQDocument, float]]:
        terms = tokenize(query_text)
        if not terms:
            return []
        hits = []
        for doc in self._documents:
            if category is not None and doc.category != category:
                continue
            score = keyword_score(terms, doc)
            if score > 0:
                hits.append((doc, score))
        hits.sort(key=lambda item: item[1], reverse=True)
        return hits[:limit]

    async def insert_faq(
        self,
        question: str,
        answer: str,
        category: str | None = None,
        embedding: list[float] | None = None,
    ) -> FAQDocument:
        if not question.strip() or not answer.strip():
            raise KnowledgeStoreError("FAQ question and answer must be non-empty.")
        document = FAQDocument(
            id=uuid.uuid4().hex,
            question=question,
            answer=answer,
            category=category or DEFAULT_CATEGORY,
            embedding=self._checked_embedding(embedding),
        )
        self._documents.append(document)
        return document

    async def get_faq(self, faq_id: str) -> FAQDocument | None:
        return next((doc for doc in self._documents if doc.id == faq_id), None)

    async def update_faq(self, faq_id: str, **changes: Any) -> FAQDocument | None:
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise KnowledgeStoreError(f"Unknown FAQ fields: {sorted(unknown)}")
        document = await self.get_faq(faq_id)
        if document is None:
            return None
        if "embedding" in changes:
            changes["embedding"] = self._checked_embedding(changes["embedding"])
        for key, value in changes.items():
            setattr(document, key, value)
        document.updated_at = utcnow()
        return document

    async def delete_faq(self, faq_id: str) -> bool:
        before = len(self._documents)
        self._documents = [doc for doc in self._documents if doc.id != faq_id]
        return len(self._documents) != before

    async def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for doc in self._documents:
            if doc.category and doc.category.strip():
                seen.setdefault(doc.category, None)
        return list(seen)

    async def count(self) -> int:
        return len(self._documents)
