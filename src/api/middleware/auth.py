# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bearer token authentication and per-request logging context.

For every request the middleware:
- assigns a request id (X-Request-ID is honoured when the client sends one)
- verifies the bearer token, if any, into request.state.user
- binds request_id, user_id and tenant_id for all log lines of the request
- logs one completion line with status and duration

A missing or rejected token leaves request.state.user as None; routes
decide through their dependencies whether that is acceptable.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.config import get_settings
from src.domains.auth.jwt import JWTError, JWTManager, TokenPayload
from src.domains.tenancy import SUPERUSER_TYPES
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

PUBLIC_PATHS = frozenset({
    "/",
    "/health",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
})


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller.

    Satisfies the tenancy Principal protocol, so it can be passed to
    resolve_scope() directly.
    """

    id: str
    user_type: str | None = None
    school_id: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_token(cls, payload: TokenPayload) -> "CurrentUser":
        return cls(
            id=payload.sub,
            user_type=payload.user_type,
            school_id=payload.school_id,
            roles=tuple(payload.roles),
        )

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_superuser(self) -> bool:
        """Platform staff allowed to act for any school."""
        return (self.user_type or "") in SUPERUSER_TYPES


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach CurrentUser and logging context to each request."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self._jwt_manager = JWTManager(get_settings().jwt)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        request.state.user = None

        clear_context()
        bind_context(request_id=request_id)
        started = time.perf_counter()
        try:
            if request.url.path not in PUBLIC_PATHS:
                request.state.user = self._authenticate(request)
            response = await call_next(request)
            logger.info(
                "%s %s -> %d (%.1f ms)",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
        finally:
            clear_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    def _authenticate(self, request: Request) -> CurrentUser | None:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None

        try:
            payload = self._jwt_manager.decode_token(token.strip(), expected_type="access")
        except JWTError as e:
            logger.debug("Bearer token ignored: %s", e)
            return None

        user = CurrentUser.from_token(payload)
        bind_context(user_id=user.id, tenant_id=user.school_id)
        return user


def get_current_user(request: Request) -> CurrentUser | None:
    """User set by AuthMiddleware, None when anonymous."""
    return getattr(request.state, "user", None)
