from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from leavedesk.api.health import router as health_router
from leavedesk.api.router import api_router
from leavedesk.config import get_settings
from leavedesk.db import create_schema, dispose_engine
from leavedesk.exceptions import setup_exception_handlers
from leavedesk.middleware import setup_middleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    if settings.create_schema_on_startup:
        await create_schema()
        logger.info("Database schema created")
    yield
    await dispose_engine()
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()


def serve() -> None:
    """Entry point for the API process."""
    settings = get_settings()
    uvicorn.run(
        "leavedesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development" and settings.debug,
        log_level=settings.log_level.lower(),
    )
