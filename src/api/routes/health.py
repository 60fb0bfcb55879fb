# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Liveness and readiness endpoints.

Both are public. /health always answers 200 and describes the database;
/health/ready answers 503 until the database responds, so a load balancer
keeps traffic away from an instance that cannot mint or enroll.
"""

import logging
import time
from datetime import datetime

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from src import __version__
from src.core.config import get_settings
from src.infrastructure.database.connection import DatabaseError, ping_database
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

_started_at = time.monotonic()


class ComponentHealth(BaseModel):
    """State of one dependency."""

    status: str = Field(description="healthy or unhealthy")
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Liveness report."""

    status: str
    version: str
    environment: str
    uptime_seconds: int
    checked_at: datetime
    database: ComponentHealth


class ReadinessResponse(BaseModel):
    """Readiness report."""

    ready: bool
    database: ComponentHealth


async def check_database() -> ComponentHealth:
    """Ping the records database."""
    try:
        latency = await ping_database()
    except DatabaseError as e:
        logger.warning("Database health check failed: %s", e)
        return ComponentHealth(status="unhealthy", message=e.message)
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Describe the service and its database."""
    database = await check_database()
    return HealthResponse(
        status=database.status,
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.monotonic() - _started_at),
        checked_at=utc_now(),
        database=database,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Ready once the database answers."""
    database = await check_database()
    ready = database.status == "healthy"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=ready, database=database)
