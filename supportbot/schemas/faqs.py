"""FAQ schema module."""

from __future__ import annotations

from pydantic import BaseModel, Field


class FAQCreate(BaseModel):
    question: str = Field(min_length=3, max_length=1000)
    answer: str = Field(min_length=1, max_length=5000)
    category: str | None = Field(default=None, max_length=120)


class FAQOut(BaseModel):
    id: str
    question: str
    answer: str
    category: str
    created_at: str
    updated_at: str
    has_embedding: bool = False
