"""Retrieval package."""

from supportbot.rag.retrieval.retriever import ContextRetriever, RetrievalOutcome

__all__ = ["ContextRetriever", "RetrievalOutcome"]
