"""Embedding provider package."""

from supportbot.rag.embeddings.gemini_embedder import GeminiEmbedder
from supportbot.rag.embeddings.provider import (
    BatchEmbedding,
    BatchEmbeddingResult,
    EmbeddingProvider,
    EmbeddingResult,
    UnavailableEmbeddingProvider,
    prepare_input,
)

__all__ = [
    "BatchEmbedding",
    "BatchEmbeddingResult",
    "EmbeddingProvider",
    "EmbeddingResult",
    "GeminiEmbedder",
    "UnavailableEmbeddingProvider",
    "prepare_input",
]
