"""FastAPI application factory and main app.

This module creates the FastAPI application with all routers and
dependency injection configured.

Web routes are thin proxies to the core build service.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from iso_creator import __version__
from iso_creator.builds.service import BuildService
from web.routers import builds, config, distros, hardware, health, ws

logger = logging.getLogger(__name__)


def create_app(service: BuildService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Build service to serve; a default one is created on startup.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan context manager.

        Creates the build service on startup and stops running
        pipelines on shutdown.
        """
        build_service = service or BuildService()
        app.state.build_service = build_service
        yield
        if build_service.active_tasks:
            logger.info("Cancelling %d running build(s)", build_service.active_tasks)
        await build_service.drain(cancel=True)

    application = FastAPI(
        title="Linux ISO Creator API",
        description="HTTP API for building custom Linux live images "
        "and streaming build status",
        version=__version__,
        lifespan=lifespan,
    )

    # Include routers
    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(distros.router, prefix="/distros", tags=["distros"])
    application.include_router(hardware.router, prefix="/hardware", tags=["hardware"])
    application.include_router(builds.router, tags=["builds"])
    application.include_router(ws.router, tags=["ws"])

    return application
