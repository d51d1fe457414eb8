"""Application entrypoint for the FastAPI service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from supportbot.api import ws
from supportbot.api.v1.router import get_api_router
from supportbot.core.config import Config, get_config
from supportbot.core.dependencies import Services
from supportbot.core.startup import bootstrap, shutdown


def create_app(config: Config | None = None, services: Services | None = None) -> FastAPI:
    """Create the application; pre-built services skip provider selection."""
    cfg = config or (services.config if services else get_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.services = services or await bootstrap(cfg)
        try:
            yield
        finally:
            if services is None:
                await shutdown(app.state.services)

    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION, lifespan=lifespan)
    app.include_router(get_api_router(cfg.API_PREFIX))
    app.include_router(ws.router)

    @app.get("/")
    async def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn supportbot.main:app`.
app = create_app()


def run() -> None:
    cfg = get_config()
    uvicorn.run("supportbot.main:app", host=cfg.API_HOST, port=cfg.API_PORT)


if __name__ == "__main__":
    run()
