"""Text generation client contracts and the Gemini adapter."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import requests

from supportbot.core.config import Config
from supportbot.core.exceptions import ProviderError, ProviderUnavailable

logger = logging.getLogger(__name__)


class GenerationClient(ABC):
    """Plain text in, plain text out."""

    model_name: str = "unknown"

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        raise NotImplementedError

    def describe(self) -> dict[str, Any]:
        return {"available": self.is_available, "model": self.model_name}


class UnavailableGenerationClient(GenerationClient):
    """Stand-in used when no generation credential is configured."""

    model_name = "unavailable"

    def __init__(self, reason: str = "No generation credential configured.") -> None:
        self.reason = reason

    @property
    def is_available(self) -> bool:
        return False

    async def generate_text(self, prompt: str) -> str:
        raise ProviderUnavailable(self.reason)

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "reason": self.reason}


def _extract_text(body: dict[str, Any]) -> str:
    """Join the text parts of the first candidate; an unexpected shape is a ProviderError."""
    try:
        candidates = body.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
    except (AttributeError, TypeError, KeyError, IndexError) as exc:
        raise ProviderError(f"Malformed Gemini generation response: {exc}") from exc


class GeminiGenerationClient(GenerationClient):
    """Gemini generateContent adapter with pacing and bounded retries."""

    def __init__(self, config: Config, session: requests.Session | None = None) -> None:
        self.api_key = config.GOOGLE_API_KEY
        self.model_name = config.GEMINI_MODEL
        self.timeout = config.PROVIDER_TIMEOUT_SECONDS
        self.max_retries = config.LLM_MAX_RETRIES
        self.min_interval = config.LLM_MIN_INTERVAL_SECONDS
        self.endpoint = f"{config.GEMINI_API_URL.rstrip('/')}/models/{self.model_name}:generateContent"
        self.generation_config = {
            "temperature": config.LLM_TEMPERATURE,
            "topP": config.LLM_TOP_P,
            "topK": config.LLM_TOP_K,
            "maxOutputTokens": config.LLM_MAX_OUTPUT_TOKENS,
        }
        self.session = session or requests.Session()
        self._rate_lock = asyncio.Lock()
        self._last_request_ts = 0.0

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    async def _apply_rate_limit(self) -> None:
        if self.min_interval <= 0:
            return
        async with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_ts
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self._last_request_ts = time.monotonic()

    async def generate_text(self, prompt: str) -> str:
        if not self.is_available:
            raise ProviderUnavailable("Gemini generation service has no API key configured.")

        last_error: Exception | None = None
        total_attempts = self.max_retries + 1
        for attempt in range(1, total_attempts + 1):
            try:
                await self._apply_rate_limit()
                body = await asyncio.wait_for(asyncio.to_thread(self._post, prompt), timeout=self.timeout)
                return _extract_text(body)
            except (ProviderError, asyncio.TimeoutError) as exc:
                last_error = exc
                logger.warning(
                    "llm.call.failed",
                    extra={
                        "event": "llm.call.failed",
                        "attempt": attempt,
                        "attempts_total": total_attempts,
                        "error": str(exc) or type(exc).__name__,
                    },
                )
                if attempt < total_attempts:
                    await asyncio.sleep(min(2 * attempt, 5))

        logger.error(
            "llm.call.unavailable",
            extra={"event": "llm.call.unavailable", "model": self.model_name, "error": str(last_error)},
        )
        raise ProviderError(f"Gemini generation failed after {total_attempts} attempt(s): {last_error}")

    def _post(self, prompt: str) -> dict[str, Any]:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self.generation_config,
        }
        try:
            response = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=(2, self.timeout),
            )
            response.raise_for_status()
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            raise ProviderError(str(exc)) from exc
        if not isinstance(body, dict):
            raise ProviderError("Gemini response is not a JSON object.")
        return body

    def describe(self) -> dict[str, Any]:
        return {
            **super().describe(),
            "provider": "google",
            "api_key_configured": bool(self.api_key),
            "timeout_seconds": self.timeout,
        }
