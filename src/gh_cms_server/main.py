"""
CMS Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from fastapi import FastAPI

from .config import settings
from .core.errors import CMSError, cms_error_handler, unhandled_exception_handler
from .github.client import close_http_client

from .api import (
    health_routes,
    repo_routes,
    media_routes,
    document_routes,
)


logger = logging.getLogger("cms.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory pattern allows:
    - Clean test instantiation
    - Controlled dependency overrides in pytest

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="gh-cms-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(CMSError, cms_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(repo_routes.router)
    app.include_router(media_routes.router)
    # Catch-all ``/{owner}/{repo}/{type}`` paths go last.
    app.include_router(document_routes.router)

    # --------------------------------------------------------------
    # Lifecycle Hooks
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info(
            "Starting gh-cms-server against %s",
            settings.github_api_base_url,
        )

    @app.on_event("shutdown")
    async def _shutdown_cleanup() -> None:
        """
        Graceful shutdown hook.

        Closes the pooled GitHub client shared by every request.
        """
        logger.info("Shutting down gh-cms-server")
        await close_http_client()

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
