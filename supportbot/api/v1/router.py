"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from supportbot.api.v1 import chat, faqs, health


def get_api_router(prefix: str = "/api/v1") -> APIRouter:
    api_router = APIRouter(prefix=prefix)
    api_router.include_router(health.router)
    api_router.include_router(chat.router)
    api_router.include_router(faqs.router)
    return api_router
