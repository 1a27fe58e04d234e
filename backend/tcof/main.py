"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from tcof.api import router as api_router
from tcof.config import get_settings
from tcof.db.session import async_session_factory, close_db, init_db
from tcof.logging_config import setup_logging
from tcof.middleware.logging import LoggingMiddleware
from tcof.middleware.request_id import RequestIDMiddleware
from tcof.services.catalog import CatalogCache, CatalogService

logger = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info("Starting TCOF Toolkit API", version=settings.app_version)
    await init_db()
    logger.info("Database connection initialized")

    async with async_session_factory() as session:
        catalog = CatalogService(session, app.state.catalog_cache)
        changed = await catalog.ensure_canonical_factors()
        await session.commit()
    if changed:
        logger.info("Canonical success factors updated", changed=changed)

    yield

    # Shutdown
    logger.info("Shutting down TCOF Toolkit API")
    await close_db()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Success factor checklists for project delivery",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Shared by every request's CatalogService
    app.state.catalog_cache = CatalogCache(ttl_seconds=settings.catalog_cache_ttl_seconds)

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint for load balancers."""
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()
