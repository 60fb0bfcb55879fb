# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependencies of the records API.

A request flows through three steps before reaching a service:
1. require_auth: the middleware must have attached a CurrentUser.
2. get_tenant_scope: the user is resolved to a TenantScope once.
3. A service factory builds the service on the request's session.

Routes use the Annotated aliases at the bottom of this module:

    @router.get("/{enrollment_id}")
    async def get_enrollment(enrollment_id: str, service: Enrollments, scope: Scope):
        return await service.get_enrollment(enrollment_id, scope)
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.enrollment import EnrollmentService
from src.domains.registration import RegistrationService
from src.domains.sequence import SequenceService
from src.domains.subject_enrollment import SubjectEnrollmentService
from src.domains.tenancy import TenantScope, resolve_scope
from src.infrastructure.database.connection import close_database, get_session, init_database


async def init_db() -> None:
    await init_database(get_settings())


async def close_db() -> None:
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request, shared by every service the route uses."""
    async with get_session() as session:
        yield session


def require_auth(request: Request) -> CurrentUser:
    """The authenticated caller.

    Raises:
        HTTPException: 401 when the request carries no valid access token.
    """
    user = get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_tenant_scope(user: CurrentUser = Depends(require_auth)) -> TenantScope:
    """Resolve the caller's scope.

    Staff without a school would only ever see empty results, so they are
    turned away here with 403.
    """
    scope = resolve_scope(user)
    if scope.is_empty:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not assigned to a school",
        )
    return scope


def require_superuser(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
    """Platform staff only.

    Raises:
        HTTPException: 403 for school users.
    """
    if not user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superuser access required",
        )
    return user


def get_sequence_service(db: AsyncSession = Depends(get_db)) -> SequenceService:
    return SequenceService(db)


def get_enrollment_service(db: AsyncSession = Depends(get_db)) -> EnrollmentService:
    return EnrollmentService(db)


def get_subject_enrollment_service(db: AsyncSession = Depends(get_db)) -> SubjectEnrollmentService:
    return SubjectEnrollmentService(db)


def get_registration_service(db: AsyncSession = Depends(get_db)) -> RegistrationService:
    return RegistrationService(db)


SuperUser = Annotated[CurrentUser, Depends(require_superuser)]
Scope = Annotated[TenantScope, Depends(get_tenant_scope)]
Sequences = Annotated[SequenceService, Depends(get_sequence_service)]
Enrollments = Annotated[EnrollmentService, Depends(get_enrollment_service)]
SubjectEnrollments = Annotated[SubjectEnrollmentService, Depends(get_subject_enrollment_service)]
Registrations = Annotated[RegistrationService, Depends(get_registration_service)]
