"""FAQ knowledge base endpoints for API v1."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from supportbot.auth.jwt import AuthenticatedUser
from supportbot.core.dependencies import Services, get_current_user, get_services
from supportbot.core.exceptions import DimensionMismatch, ProviderError, ProviderUnavailable
from supportbot.rag.knowledge.base import FAQDocument
from supportbot.schemas.common import APIEnvelope
from supportbot.schemas.faqs import FAQCreate, FAQOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/faqs", tags=["faqs"])


def _to_out(document: FAQDocument) -> FAQOut:
    return FAQOut(
        id=document.id,
        question=document.question,
        answer=document.answer,
        category=document.category,
        created_at=document.created_at.isoformat(),
        updated_at=document.updated_at.isoformat(),
        has_embedding=bool(document.embedding),
    )


def _require_store(services: Services) -> None:
    if not services.knowledge_store.is_available:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Knowledge store not available.")


@router.get("/categories")
async def list_categories(services: Services = Depends(get_services)) -> dict:
    categories = await services.knowledge_store.categories()
    return {"categories": categories, "count": len(categories)}


@router.post("", response_model=FAQOut, status_code=status.HTTP_201_CREATED)
async def create_faq(
    payload: FAQCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> FAQOut:
    _require_store(services)
    embedding = None
    try:
        result = await services.embedding_provider.embed(payload.question, category=payload.category)
        embedding = result.vector
    except (ProviderUnavailable, ProviderError, DimensionMismatch) as exc:
        # Stored without a vector the entry is still reachable through keyword search.
        logger.warning("faq.embedding.skipped", extra={"event": "faq.embedding.skipped", "error": str(exc)})

    document = await services.knowledge_store.insert_faq(
        question=payload.question,
        answer=payload.answer,
        category=payload.category,
        embedding=embedding,
    )
    return _to_out(document)


@router.get("/{faq_id}", response_model=FAQOut)
async def get_faq(faq_id: str, services: Services = Depends(get_services)) -> FAQOut:
    _require_store(services)
    document = await services.knowledge_store.get_faq(faq_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="FAQ not found.")
    return _to_out(document)


@router.delete("/{faq_id}", response_model=APIEnvelope)
async def delete_faq(
    faq_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> APIEnvelope:
    _require_store(services)
    if not await services.knowledge_store.delete_faq(faq_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="FAQ not found.")
    return APIEnvelope(message=f"FAQ {faq_id} deleted.")
