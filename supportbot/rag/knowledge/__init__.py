"""FAQ knowledge store package."""

from supportbot.rag.knowledge.base import (
    DEFAULT_CATEGORY,
    PROVENANCE_KEYWORD,
    PROVENANCE_VECTOR,
    FAQDocument,
    KnowledgeStore,
    RetrievalResult,
    SearchOutcome,
)
from supportbot.rag.knowledge.memory_store import InMemoryKnowledgeStore
from supportbot.rag.knowledge.sql_store import SQLKnowledgeStore
from supportbot.rag.knowledge.unavailable import UnavailableKnowledgeStore

__all__ = [
    "DEFAULT_CATEGORY",
    "PROVENANCE_KEYWORD",
    "PROVENANCE_VECTOR",
    "FAQDocument",
    "InMemoryKnowledgeStore",
    "KnowledgeStore",
    "RetrievalResult",
    "SQLKnowledgeStore",
    "SearchOutcome",
    "UnavailableKnowledgeStore",
]
