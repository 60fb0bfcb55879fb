# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application factory of the school records API.

Routes never translate domain errors themselves. Every service error is a
RecordsError carrying an ErrorKind, and records_error_handler() turns the
kind into the status code below with a {"error", "message"} body.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.api.dependencies import close_db, init_db
from src.api.middleware.auth import AuthMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.core.errors import ErrorKind, RecordsError
from src.infrastructure.database.migrations.runner import run_migrations
from src.models.common import ErrorResponse
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RETRY_AFTER_SECONDS = 1


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging, migrate if asked, open and close the database.

    A database that is down at startup does not stop the API; /health/ready
    reports it until it comes back.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting school records API %s (%s)", __version__, settings.environment)

    if settings.database.migrate_on_startup:
        applied = await run_migrations(settings.database.url)
        if applied:
            logger.info("Applied migrations at startup: %s", ", ".join(applied))

    try:
        await init_db()
    except Exception:
        logger.exception("Records database could not be initialized")

    yield

    await close_db()
    logger.info("School records API stopped")


async def records_error_handler(request: Request, exc: RecordsError) -> JSONResponse:
    """Render a domain error as JSON with the status of its kind."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    headers = None
    if exc.kind == ErrorKind.TRANSIENT:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}

    logger.info(
        "Request rejected: %s %s, kind=%s, message=%s",
        request.method,
        request.url.path,
        exc.kind.value,
        exc.message,
    )
    body = ErrorResponse(error=exc.kind, message=exc.message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def create_app() -> FastAPI:
    """Build the API with middleware, error handling and routers."""
    settings = get_settings()
    docs = settings.debug

    app = FastAPI(
        title="School Records API",
        description="Enrollment and sequence numbering core for multi-school records",
        version=__version__,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
        # /path -> /path/ redirects drop the Authorization header
        redirect_slashes=False,
    )

    app.add_exception_handler(RecordsError, records_error_handler)

    # Last added runs first: CORS answers preflights before authentication
    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
