"""LLM package for prompting, generation and validation."""

from supportbot.llm.client import GeminiGenerationClient, GenerationClient, UnavailableGenerationClient
from supportbot.llm.generator import GenerationResult, ResponseGenerator

__all__ = [
    "GeminiGenerationClient",
    "GenerationClient",
    "GenerationResult",
    "ResponseGenerator",
    "UnavailableGenerationClient",
]
