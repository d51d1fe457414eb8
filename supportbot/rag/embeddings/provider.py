"""Embedding provider abstraction."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from supportbot.core.exceptions import DimensionMismatch, ProviderError, ProviderUnavailable

logger = logging.getLogger(__name__)

BatchItem = Union[str, Mapping[str, Any]]


@dataclass(frozen=True)
class EmbeddingResult:
    vector: list[float]
    model_name: str
    input_text: str
    original_text: str
    category: str | None = None

    @property
    def dimensions(self) -> int:
        return len(self.vector)


@dataclass(frozen=True)
class BatchEmbedding:
    index: int
    result: EmbeddingResult
    item: BatchItem


@dataclass
class BatchEmbeddingResult:
    embeddings: list[BatchEmbedding] = field(default_factory=list)
    failed_indexes: list[int] = field(default_factory=list)
    model_name: str = ""
    batch_size: int = 0

    @property
    def total_processed(self) -> int:
        return len(self.embeddings)


def prepare_input(text: str, category: str | None = None) -> str:
    """Strip text and prefix it with "{category}: " when a category is given."""
    cleaned = text.strip()
    if category:
        return f"{category}: {cleaned}"
    return cleaned


def _unpack_item(item: BatchItem) -> tuple[str, str | None]:
    if isinstance(item, str):
        return item, None
    text = item.get("text") or item.get("question") or ""
    return str(text), item.get("category")


class EmbeddingProvider(ABC):
    """Contract for embedding providers."""

    model_name: str = "unknown"
    dimensions: int = 0

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def embed(self, text: str, category: str | None = None) -> EmbeddingResult:
        """Vectorize text, optionally category-augmented."""
        raise NotImplementedError

    async def embed_batch(
        self,
        items: Sequence[BatchItem],
        batch_size: int = 10,
        item_delay: float = 0.2,
        batch_delay: float = 1.0,
        include_category: bool = True,
    ) -> BatchEmbeddingResult:
        """Embed items one at a time, batch by batch, pausing to respect rate limits.

        A per-item provider failure is logged and skipped. ProviderUnavailable
        aborts the whole run since no later item could succeed either.
        """
        if not self.is_available:
            raise ProviderUnavailable(f"Embedding provider {self.model_name} is not available.")
        batch_size = max(1, batch_size)
        outcome = BatchEmbeddingResult(model_name=self.model_name, batch_size=batch_size)
        total = len(items)
        total_batches = (total + batch_size - 1) // batch_size

        for start in range(0, total, batch_size):
            batch = items[start:start + batch_size]
            batch_number = start // batch_size + 1
            logger.info(
                "rag.embedding.batch_started",
                extra={"event": "rag.embedding.batch_started", "batch": batch_number, "batches": total_batches, "size": len(batch)},
            )
            for offset, item in enumerate(batch):
                index = start + offset
                text, category = _unpack_item(item)
                try:
                    result = await self.embed(text, category=category if include_category else None)
                except ProviderUnavailable:
                    raise
                except (ProviderError, DimensionMismatch) as exc:
                    outcome.failed_indexes.append(index)
                    logger.warning(
                        "rag.embedding.item_failed",
                        extra={"event": "rag.embedding.item_failed", "index": index, "error": str(exc)},
                    )
                else:
                    outcome.embeddings.append(BatchEmbedding(index=index, result=result, item=item))
                if offset < len(batch) - 1 and item_delay > 0:
                    await asyncio.sleep(item_delay)

            if start + batch_size < total and batch_delay > 0:
                await asyncio.sleep(batch_delay)

        logger.info(
            "rag.embedding.batch_completed",
            extra={"event": "rag.embedding.batch_completed", "processed": outcome.total_processed, "requested": total},
        )
        return outcome

    def describe(self) -> dict[str, Any]:
        return {"available": self.is_available, "model": self.model_name, "dimensions": self.dimensions}


class UnavailableEmbeddingProvider(EmbeddingProvider):
    """Stand-in used when no embedding credential is configured."""

    def __init__(self, reason: str = "No embedding credential configured.", dimensions: int = 0) -> None:
        self.reason = reason
        self.dimensions = dimensions
        self.model_name = "unavailable"

    @property
    def is_available(self) -> bool:
        return False

    async def embed(self, text: str, category: str | None = None) -> EmbeddingResult:
        raise ProviderUnavailable(self.reason)

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "reason": self.reason}
