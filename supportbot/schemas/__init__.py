"""Pydantic request/response schemas."""

from supportbot.schemas.chat import ChatRequest, ChatResponse
from supportbot.schemas.common import APIEnvelope
from supportbot.schemas.faqs import FAQCreate, FAQOut

__all__ = ["APIEnvelope", "ChatRequest", "ChatResponse", "FAQCreate", "FAQOut"]
