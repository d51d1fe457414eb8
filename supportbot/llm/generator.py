"""Grounded answer generation with deterministic guard rails."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from time import perf_counter

from supportbot.cache.history import ConversationTurn
from supportbot.core.exceptions import EmptyResponse
from supportbot.llm.client import GenerationClient
from supportbot.llm.prompts import FALLBACK_SYSTEM_PROMPT, render_rag_prompt, render_simple_prompt
from supportbot.llm.validators.basic import validate_non_empty_output
from supportbot.rag.knowledge.base import RetrievalResult

logger = logging.getLogger(__name__)

Validator = Callable[[str], tuple[bool, str | None]]


@dataclass(frozen=True)
class GenerationResult:
    answer_text: str
    raw_length: int
    prompt_length: int
    model_name: str
    latency_ms: int


class ResponseGenerator:
    """Builds prompts, calls the generation client and validates its output."""

    def __init__(
        self,
        client: GenerationClient,
        max_history_turns: int = 5,
        max_context_length: int | None = 4000,
        post_validators: list[Validator] | None = None,
    ) -> None:
        self.client = client
        self.max_history_turns = max_history_turns
        self.max_context_length = max_context_length
        self.post_validators = post_validators or [validate_non_empty_output]

    @property
    def is_available(self) -> bool:
        return self.client.is_available

    @property
    def model_name(self) -> str:
        return self.client.model_name

    async def generate(
        self,
        query: str,
        context: Sequence[RetrievalResult],
        history: Sequence[ConversationTurn] = (),
    ) -> GenerationResult:
        """Answer query grounded on context; raises EmptyResponse on blank output."""
        prompt = render_rag_prompt(
            query,
            context,
            history,
            max_history_turns=self.max_history_turns,
            max_context_length=self.max_context_length,
        )
        logger.info(
            "llm.generate.started",
            extra={"event": "llm.generate.started", "context_items": len(context), "prompt_length": len(prompt)},
        )
        return await self._run(prompt)

    async def generate_simple(self, query: str, system_prompt: str = FALLBACK_SYSTEM_PROMPT) -> GenerationResult:
        """Context-free answer used when the grounded pipeline broke down."""
        return await self._run(render_simple_prompt(query, system_prompt))

    async def _run(self, prompt: str) -> GenerationResult:
        started = perf_counter()
        text = await self.client.generate_text(prompt)
        for validator in self.post_validators:
            ok, reason = validator(text)
            if not ok:
                raise EmptyResponse(reason or "Generation output failed validation.")
        return GenerationResult(
            answer_text=text.strip(),
            raw_length=len(text),
            prompt_length=len(prompt),
            model_name=self.client.model_name,
            latency_ms=int((perf_counter() - started) * 1000),
        )
