"""FastAPI application factory for the admin API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chainhook_pipeline.api.admin import create_admin_router
from chainhook_pipeline.application.services import EventPipeline, MonitoringOrchestrator
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.version import __version__

logger = get_logger(__name__)


def create_app(
    orchestrator: MonitoringOrchestrator,
    pipeline: EventPipeline | None = None,
) -> FastAPI:
    """Create an ASGI app that starts monitoring on startup and stops it on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await orchestrator.initialize()
        try:
            yield
        finally:
            if pipeline is not None:
                await pipeline.flush()
            await orchestrator.shutdown()

    app = FastAPI(title="Chainhook Pipeline Admin", version=__version__, lifespan=lifespan)
    app.include_router(create_admin_router(orchestrator, pipeline))

    logger.info("Admin API created", extra={"node_url": orchestrator.config.node_url})
    return app
