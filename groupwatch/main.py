"""FastAPI application factory and entrypoint."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from groupwatch.api.routes import api_router, root_router
from groupwatch.core.config import settings
from groupwatch.core.db import dispose_engine
from groupwatch.core.errors import register_exception_handlers
from groupwatch.core.logging import configure_logging
from groupwatch.core.metrics import setup_metrics
from groupwatch.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from groupwatch.core.version import APP_VERSION

ALLOWED_METHODS = ["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Authorization", "Content-Type", "Accept", "X-Requested-With"]

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""

    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        version=APP_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    register_exception_handlers(application)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        max_age=86400,
    )

    setup_metrics(application)

    application.add_middleware(
        SecurityHeadersMiddleware,
        private_prefix=settings.api_v1_prefix,
        enable_hsts=settings.environment in {"staging", "production"},
    )
    application.add_middleware(
        RequestSizeLimitMiddleware,
        max_request_bytes=settings.max_request_bytes,
    )
    # added last, so it wraps everything above
    application.add_middleware(RequestContextMiddleware)

    application.include_router(root_router)
    application.include_router(api_router)

    @application.on_event("startup")
    async def _log_startup() -> None:
        logger.info(
            "Application started",
            extra={"environment": settings.environment, "version": APP_VERSION},
        )

    @application.on_event("shutdown")
    async def _dispose_engine() -> None:
        await dispose_engine()

    return application


app = create_app()

__all__ = ["app", "create_app"]
