"""Startup validation and bootstrap helpers."""

from __future__ import annotations

import logging

from supportbot.core.config import Config, get_config
from supportbot.core.dependencies import Services, build_services
from supportbot.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def bootstrap(config: Config | None = None) -> Services:
    """Initialize logging, select providers and log what the pipeline can do."""
    config = config or get_config()
    configure_logging(config)
    services = await build_services(config)

    capabilities = {
        "vector_search": services.orchestrator.retriever.is_available,
        "llm_generation": services.generation_client.is_available,
        "caching": services.orchestrator.cache_enabled,
        "cache_backend": services.cache_backend.name,
        "knowledge_store": services.knowledge_store.name,
    }
    if not services.knowledge_store.is_available:
        logger.warning("startup.knowledge_store.unavailable", extra={"event": "startup.knowledge_store.unavailable"})
    if not services.generation_client.is_available:
        logger.warning("startup.generation.unavailable", extra={"event": "startup.generation.unavailable"})

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "threshold_high": config.SIMILARITY_THRESHOLD_HIGH,
            "threshold_low": config.SIMILARITY_THRESHOLD_LOW,
            "max_retrieval_results": config.MAX_RETRIEVAL_RESULTS,
            **capabilities,
        },
    )
    return services


async def shutdown(services: Services) -> None:
    await services.cache_backend.close()
    logger.info("shutdown.completed", extra={"event": "shutdown.completed"})
