"""Chat schema module."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    category: str | None = Field(default=None, max_length=120)
    room: str | None = Field(default=None, max_length=120)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message cannot be empty")
        return value.strip()


class ConfidenceOut(BaseModel):
    level: str
    score: float
    reason: str


class ContextSourceOut(BaseModel):
    question: str
    category: str
    score: float


class ChatResponse(BaseModel):
    response: str
    cached: bool
    confidence: ConfidenceOut
    contextUsed: int
    contextSources: list[ContextSourceOut] = Field(default_factory=list)
    retrievalTime: int = 0
    generationTime: int = 0
    processingTime: int = 0
    userId: str
    timestamp: str
    model: str
    type: str
    retrievalMethod: str | None = None
