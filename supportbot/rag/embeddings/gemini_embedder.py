"""Gemini-based embedding provider implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from supportbot.core.config import Config
from supportbot.core.exceptions import DimensionMismatch, EmptyResult, ProviderError, ProviderUnavailable
from supportbot.rag.embeddings.provider import EmbeddingProvider, EmbeddingResult, prepare_input

logger = logging.getLogger(__name__)


def _parse_values(body: dict[str, Any]) -> list[float]:
    try:
        values = (body.get("embedding") or {}).get("values")
        if not values:
            raise EmptyResult("No embedding data received from Gemini.")
        return [float(item) for item in values]
    except (AttributeError, TypeError, ValueError) as exc:
        logger.warning("rag.embedding.malformed", extra={"event": "rag.embedding.malformed", "error": str(exc)})
        raise ProviderError(f"Malformed Gemini embedding response: {exc}") from exc


class GeminiEmbedder(EmbeddingProvider):
    """Embedding provider backed by the Gemini embedContent endpoint."""

    def __init__(self, config: Config, session: requests.Session | None = None) -> None:
        self.api_key = config.GOOGLE_API_KEY
        self.model_name = config.EMBEDDING_MODEL
        self.dimensions = config.EMBEDDING_DIMENSIONS
        self.timeout = config.PROVIDER_TIMEOUT_SECONDS
        self.endpoint = f"{config.GEMINI_API_URL.rstrip('/')}/models/{self.model_name}:embedContent"
        self.session = session or requests.Session()

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    async def embed(self, text: str, category: str | None = None) -> EmbeddingResult:
        if not self.is_available:
            raise ProviderUnavailable("Gemini embedding service has no API key configured.")

        input_text = prepare_input(text, category)
        try:
            body = await asyncio.wait_for(asyncio.to_thread(self._post, input_text), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderError(f"Embedding request timed out after {self.timeout}s.") from exc

        vector = _parse_values(body)
        if len(vector) != self.dimensions:
            raise DimensionMismatch(f"Expected {self.dimensions} dimensions, got {len(vector)}.")

        logger.debug(
            "rag.embedding.generated",
            extra={"event": "rag.embedding.generated", "dimensions": len(vector), "model": self.model_name},
        )
        return EmbeddingResult(
            vector=vector,
            model_name=self.model_name,
            input_text=input_text,
            original_text=text,
            category=category,
        )

    def _post(self, input_text: str) -> dict[str, Any]:
        payload = {
            "model": f"models/{self.model_name}",
            "content": {"parts": [{"text": input_text}]},
        }
        try:
            response = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=(5, self.timeout),
            )
            response.raise_for_status()
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.warning("rag.embedding.failed", extra={"event": "rag.embedding.failed", "error": str(exc)})
            raise ProviderError(f"Gemini embedding request failed: {exc}") from exc
        if not isinstance(body, dict):
            raise ProviderError("Gemini embedding response is not a JSON object.")
        return body

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "provider": "google", "api_key_configured": bool(self.api_key)}
