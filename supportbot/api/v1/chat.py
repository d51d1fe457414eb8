"""Chat and RAG endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from supportbot.auth.jwt import AuthenticatedUser
from supportbot.core.dependencies import Services, get_current_user, get_services
from supportbot.schemas.chat import ChatRequest, ChatResponse

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> ChatResponse:
    turns = await services.history.recent_turns(user.user_id, limit=services.config.MAX_HISTORY_TURNS)
    result = await services.orchestrator.process_query(
        payload.message,
        user_id=user.user_id,
        category=payload.category,
        history=turns,
    )
    return ChatResponse(**result.to_dict())


@router.get("/chat/history")
async def chat_history(
    limit: int = Query(default=20, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict:
    messages = await services.history.messages(user.user_id, limit=limit)
    return {"userId": user.user_id, "messages": messages, "count": len(messages)}


@router.get("/rag/stats")
async def rag_stats(
    user: AuthenticatedUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict:
    return await services.orchestrator.stats()


@router.post("/rag/test")
async def rag_test(
    user: AuthenticatedUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict:
    return await services.orchestrator.test_pipeline()
