"""Knowledge store variant used when no database is configured."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from supportbot.core.exceptions import ProviderUnavailable
from supportbot.rag.knowledge.base import FAQDocument, KnowledgeStore, SearchOutcome


class UnavailableKnowledgeStore(KnowledgeStore):
    """Searches answer empty; mutations raise ProviderUnavailable."""

    name = "unavailable"

    def __init__(self, reason: str = "No knowledge store configured.") -> None:
        super().__init__()
        self.reason = reason

    @property
    def is_available(self) -> bool:
        return False

    async def vector_search(
        self,
        query_vector: Sequence[float],
        limit: int,
        threshold: float,
        category: str | None = None,
        query_text: str = "",
    ) -> SearchOutcome:
        return SearchOutcome(error=self.reason)

    async def text_search_fallback(self, query_text: str, limit: int, category: str | None = None) -> SearchOutcome:
        return SearchOutcome(fallback=True, error=self.reason)

    async def _vector_candidates(self, query_vector: Sequence[float], num_candidates: int) -> list[tuple[FAQDocument, float]]:
        raise ProviderUnavailable(self.reason)

    async def _keyword_candidates(self, query_text: str, limit: int, category: str | None) -> list[tuple[FAQDocument, float]]:
        raise ProviderUnavailable(self.reason)

    async def insert_faq(
        self,
        question: str,
        answer: str,
        category: str | None = None,
        embedding: list[float] | None = None,
    ) -> FAQDocument:
        raise ProviderUnavailable(self.reason)

    async def get_faq(self, faq_id: str) -> FAQDocument | None:
        raise ProviderUnavailable(self.reason)

    async def update_faq(self, faq_id: str, **changes: Any) -> FAQDocument | None:
        raise ProviderUnavailable(self.reason)

    async def delete_faq(self, faq_id: str) -> bool:
        raise ProviderUnavailable(self.reason)

    async def categories(self) -> list[str]:
        return []

    async def count(self) -> int:
        return 0

    async def describe(self) -> dict[str, Any]:
        return {"available": False, "store": self.name, "reason": self.reason}
