"""
Main entry point for the FastAPI application.
Configures lifespan events, error handlers and mounts routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import router as api_router
from src.config.settings import settings
from src.core.errors import SocialError
from src.services.node import node_service

# Setup Logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Disable these warnings as they are false positives caused by fasapi syntax
# pylint: disable=redefined-outer-name
# pylint: disable=unused-argument
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application Lifecycle Manager.
    Opens the node's storage on startup and releases it on shutdown.
    """
    logger.info("Starting Friend Chat Node...")

    try:
        await node_service.initialize(settings.db_name)
    except ValueError as e:
        logger.warning("Initialization skipped: %s", e)

    yield

    logger.info("Shutting down Friend Chat Node...")
    await node_service.shutdown()


async def social_error_handler(request: Request, exc: SocialError) -> JSONResponse:
    """Maps rejected operations to their HTTP status and error envelope."""
    logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def create_app() -> FastAPI:
    """Factory to create the app."""
    application = FastAPI(
        title=settings.app_name,
        description="Friend Chat API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(SocialError, social_error_handler)

    # Routers
    application.include_router(api_router, prefix="/api")

    return application


app = create_app()
