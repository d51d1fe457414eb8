"""Prompt templates for grounded FAQ answering."""

from __future__ import annotations

from collections.abc import Sequence

from supportbot.cache.history import ConversationTurn
from supportbot.rag.knowledge.base import RetrievalResult

RAG_PREAMBLE = """You are a helpful ecommerce customer support assistant. Your goal is to provide accurate, helpful, and friendly responses to customer inquiries.

INSTRUCTIONS:
1. Use the provided FAQ context to answer the customer's question accurately
2. If the context contains highly relevant information (>85% relevance), use it directly
3. If the context is moderately relevant (75-85%), use it as guidance but adapt your response
4. If no relevant context is found, politely explain that you need more information or suggest contacting support
5. Always be polite, professional, and customer-focused
6. Keep responses concise but complete
7. If asked about specific policies, prices, or technical details not in the context, direct them to contact support

"""

FALLBACK_SYSTEM_PROMPT = (
    "You are a helpful ecommerce customer support assistant. Provide a brief, helpful response "
    "and suggest contacting support for specific issues."
)


def render_context_block(context: Sequence[RetrievalResult], max_length: int | None = None) -> str:
    if not context:
        return ""
    block = "RELEVANT FAQ CONTEXT:\n"
    for index, item in enumerate(context, start=1):
        entry = (
            f"{index}. Q: {item.question}\n"
            f"   A: {item.answer}\n"
            f"   Category: {item.category}\n"
            f"   Relevance: {item.score * 100:.1f}%\n\n"
        )
        # The best match is always kept even when it alone exceeds the budget.
        if max_length is not None and index > 1 and len(block) + len(entry) > max_length:
            break
        block += entry
    return block


def render_history_block(history: Sequence[ConversationTurn], max_turns: int = 5) -> str:
    recent = list(history)[-max_turns:] if max_turns > 0 else []
    if not recent:
        return ""
    block = "RECENT CONVERSATION:\n"
    for turn in recent:
        label = "Customer" if turn.role == "user" else "Assistant"
        block += f"{label}: {turn.content}\n"
    return block + "\n"


def render_rag_prompt(
    query: str,
    context: Sequence[RetrievalResult],
    history: Sequence[ConversationTurn] = (),
    max_history_turns: int = 5,
    max_context_length: int | None = None,
) -> str:
    return (
        RAG_PREAMBLE
        + render_context_block(context, max_length=max_context_length)
        + render_history_block(history, max_turns=max_history_turns)
        + f"CUSTOMER QUESTION: {query}\n\nRESPONSE:"
    )


def render_simple_prompt(query: str, system_prompt: str = FALLBACK_SYSTEM_PROMPT) -> str:
    return f"{system_prompt}\n\nCustomer: {query}\n\nAssistant:"
