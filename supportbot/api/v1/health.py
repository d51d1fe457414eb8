"""Health endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from supportbot.core.dependencies import Services, get_services

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(services: Services = Depends(get_services)) -> dict:
    cfg = services.config
    return {
        "status": "ok",
        "service": cfg.APP_NAME,
        "version": cfg.APP_VERSION,
        "capabilities": {
            "vector_search": services.orchestrator.retriever.is_available,
            "llm_generation": services.generation_client.is_available,
            "caching": services.orchestrator.cache_enabled,
        },
    }
