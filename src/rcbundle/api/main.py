"""FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rcbundle import __version__
from rcbundle.api.models import HealthModel
from rcbundle.api.routes import router
from rcbundle.bundle.library import ResourceLibrary
from rcbundle.config import Settings, configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    library: ResourceLibrary | None = None,
) -> FastAPI:
    """Create the rcbundle FastAPI application.

    Args:
        settings: Configuration (Settings.from_env() when omitted)
        library: Pre-built library (tests); one is created per app otherwise

    Returns:
        Configured FastAPI application
    """
    settings = settings or (library.settings if library else Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        configure_logging(settings.log_level)
        owned = library is None
        app.state.library = library or ResourceLibrary(settings)
        logger.info(f"rcbundle API started (cache={settings.cache_root})")

        yield

        if owned:
            await app.state.library.aclose()
        logger.info("rcbundle API stopped")

    app = FastAPI(
        title="rcbundle",
        description="Translation resource discovery, resolution and loading",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "rcbundle",
            "version": __version__,
            "docs": "/docs",
            "api": "/api/v1",
        }

    @app.get("/health", response_model=HealthModel)
    async def health():
        """Health check endpoint."""
        return HealthModel(
            status="ok",
            version=__version__,
            cache_root=str(settings.cache_root),
            base_url=settings.base_url,
        )

    return app
