"""SQLAlchemy-backed FAQ knowledge store with JSON-stored embeddings."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from supportbot.core.exceptions import KnowledgeStoreError
from supportbot.database.db import build_session_factory, session_scope
from supportbot.database.models import Base, FAQEntry
from supportbot.rag.knowledge.base import (
    DEFAULT_CATEGORY,
    FAQDocument,
    KnowledgeStore,
    keyword_score,
    tokenize,
)

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = {"question", "answer", "category", "embedding"}


def _to_document(row: FAQEntry) -> FAQDocument:
    return FAQDocument(
        id=str(row.id),
        question=row.question,
        answer=row.answer,
        category=row.category or DEFAULT_CATEGORY,
        embedding=list(row.embedding) if row.embedding else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _parse_id(faq_id: str) -> int | None:
    try:
        return int(faq_id)
    except (TypeError, ValueError):
        return None


class SQLKnowledgeStore(KnowledgeStore):
    """Relational store; similarity is computed in process over stored vectors."""

    name = "sql"

    def __init__(
        self,
        engine: Engine,
        high_threshold: float = 0.85,
        low_threshold: float = 0.75,
        session_factory: sessionmaker[Session] | None = None,
        dimensions: int | None = None,
    ) -> None:
        super().__init__(high_threshold=high_threshold, low_threshold=low_threshold, dimensions=dimensions)
        self.engine = engine
        self.session_factory = session_factory or build_session_factory(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("knowledge.schema.ready", extra={"event": "knowledge.schema.ready", "table": FAQEntry.__tablename__})

    async def _vector_candidates(
        self, query_vector: Sequence[float], num_candidates: int
    ) -> list[tuple[FAQDocument, float]]:
        documents = await asyncio.to_thread(self._load_embedded)
        return self._rank_embedded(query_vector, documents, num_candidates)

    def _load_embedded(self) -> list[FAQDocument]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(FAQEntry).where(FAQEntry.embedding.is_not(None)).order_by(FAQEntry.id.asc())
            ).all()
            return [_to_document(row) for row in rows if row.embedding]

    async def _keyword_candidates(
        self, query_text: str, limit: int, category: str | None
    ) -> list[tuple[FAQDocument, float]]:
        terms = tokenize(query_text)
        if not terms:
            return []
        documents = await asyncio.to_thread(self._load_keyword_matches, terms, category)
        hits = [(doc, keyword_score(terms, doc)) for doc in documents]
        hits = [item for item in hits if item[1] > 0]
        hits.sort(key=lambda item: item[1], reverse=True)
        return hits[:limit]

    def _load_keyword_matches(self, terms: list[str], category: str | None) -> list[FAQDocument]:
        clauses = []
        for term in set(terms):
            pattern = f"%{term}%"
            clauses.extend(
                [FAQEntry.question.ilike(pattern), FAQEntry.answer.ilike(pattern), FAQEntry.category.ilike(pattern)]
            )
        statement = select(FAQEntry).where(or_(*clauses)).order_by(FAQEntry.id.asc())
        if category is not None:
            statement = statement.where(FAQEntry.category == category)
        with session_scope(self.session_factory) as session:
            return [_to_document(row) for row in session.scalars(statement).all()]

    async def insert_faq(
        self,
        question: str,
        answer: str,
        category: str | None = None,
        embedding: list[float] | None = None,
    ) -> FAQDocument:
        if not question.strip() or not answer.strip():
            raise KnowledgeStoreError("FAQ question and answer must be non-empty.")
        return await asyncio.to_thread(
            self._insert, question, answer, category or DEFAULT_CATEGORY, self._checked_embedding(embedding)
        )

    def _insert(self, question: str, answer: str, category: str, embedding: list[float] | None) -> FAQDocument:
        with session_scope(self.session_factory) as session:
            row = FAQEntry(
                question=question,
                answer=answer,
                category=category,
                embedding=embedding,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.info("knowledge.faq.inserted", extra={"event": "knowledge.faq.inserted", "faq_id": row.id})
            return _to_document(row)

    async def get_faq(self, faq_id: str) -> FAQDocument | None:
        return await asyncio.to_thread(self._get, faq_id)

    def _get(self, faq_id: str) -> FAQDocument | None:
        row_id = _parse_id(faq_id)
        if row_id is None:
            return None
        with session_scope(self.session_factory) as session:
            row = session.get(FAQEntry, row_id)
            return _to_document(row) if row else None

    async def update_faq(self, faq_id: str, **changes: Any) -> FAQDocument | None:
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise KnowledgeStoreError(f"Unknown FAQ fields: {sorted(unknown)}")
        if "embedding" in changes:
            changes["embedding"] = self._checked_embedding(changes["embedding"])
        return await asyncio.to_thread(self._update, faq_id, changes)

    def _update(self, faq_id: str, changes: dict[str, Any]) -> FAQDocument | None:
        row_id = _parse_id(faq_id)
        if row_id is None:
            return None
        with session_scope(self.session_factory) as session:
            row = session.get(FAQEntry, row_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return _to_document(row)

    async def delete_faq(self, faq_id: str) -> bool:
        return await asyncio.to_thread(self._delete, faq_id)

    def _delete(self, faq_id: str) -> bool:
        row_id = _parse_id(faq_id)
        if row_id is None:
            return False
        with session_scope(self.session_factory) as session:
            result = session.execute(delete(FAQEntry).where(FAQEntry.id == row_id))
            session.commit()
            return bool(result.rowcount)

    async def categories(self) -> list[str]:
        return await asyncio.to_thread(self._categories)

    def _categories(self) -> list[str]:
        with session_scope(self.session_factory) as session:
            values = session.scalars(select(FAQEntry.category).distinct().order_by(FAQEntry.category)).all()
            return [value for value in values if value and value.strip()]

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)

    def _count(self) -> int:
        with session_scope(self.session_factory) as session:
            return int(session.scalar(select(func.count()).select_from(FAQEntry)) or 0)
