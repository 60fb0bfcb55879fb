# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration API endpoints.

- POST /students - Register a student, minting an admission number if needed
- POST /teachers - Register a teacher with a minted employee number
"""

from fastapi import APIRouter, status

from src.api.dependencies import Registrations, Scope
from src.models.registration import (
    RegisterStudentRequest,
    RegisterTeacherRequest,
    StudentResponse,
    TeacherResponse,
)

router = APIRouter()


@router.post(
    "/students",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register student",
)
async def register_student(
    data: RegisterStudentRequest,
    service: Registrations,
    scope: Scope,
) -> StudentResponse:
    """Register a student in the caller's school."""
    return await service.register_student(data, scope)


@router.post(
    "/teachers",
    response_model=TeacherResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register teacher",
)
async def register_teacher(
    data: RegisterTeacherRequest,
    service: Registrations,
    scope: Scope,
) -> TeacherResponse:
    """Register a teacher in the caller's school."""
    return await service.register_teacher(data, scope)
