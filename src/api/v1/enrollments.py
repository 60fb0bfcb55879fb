# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

This module provides endpoints for the enrollment lifecycle:
- POST / - Enroll a student in a class
- GET / - List enrollments
- POST /promote - Promote a student to another class
- POST /transfer - Transfer a student to another school
- GET /students/{student_id}/history - Enrollment history of a student
- GET /{enrollment_id} - Get enrollment details
- PATCH /{enrollment_id}/status - Administrative status correction

Domain errors are translated to HTTP responses by the application's
exception handler.
"""

import logging

from fastapi import APIRouter, Query, status

from src.api.dependencies import Enrollments, Scope
from src.infrastructure.database.models.enrollment import EnrollmentStatus
from src.models.enrollment import (
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentResult,
    EnrollRequest,
    PromoteRequest,
    TransferRequest,
    TransferResult,
    UpdateEnrollmentStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=EnrollmentResult,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll student",
    description="Enroll a student in a class and attach its core subjects.",
)
async def enroll_student(
    data: EnrollRequest,
    service: Enrollments,
    scope: Scope,
) -> EnrollmentResult:
    """Enroll a student in a class for an academic year."""
    return await service.enroll(
        student_id=data.student_id,
        class_id=data.class_id,
        academic_year_id=data.academic_year_id,
        scope=scope,
        stream_id=data.stream_id,
        elective_class_subject_ids=data.elective_class_subject_ids,
    )


@router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List enrollments",
)
async def list_enrollments(
    service: Enrollments,
    scope: Scope,
    student_id: str | None = Query(None, description="Filter by student"),
    class_id: str | None = Query(None, description="Filter by class"),
    academic_year_id: str | None = Query(None, description="Filter by academic year"),
    enrollment_status: EnrollmentStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> EnrollmentListResponse:
    """List enrollments visible to the caller."""
    items, total = await service.list_enrollments(
        scope=scope,
        student_id=student_id,
        class_id=class_id,
        academic_year_id=academic_year_id,
        status=enrollment_status,
        limit=limit,
        offset=offset,
    )
    return EnrollmentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post(
    "/promote",
    response_model=EnrollmentResult,
    status_code=status.HTTP_201_CREATED,
    summary="Promote student",
)
async def promote_student(
    data: PromoteRequest,
    service: Enrollments,
    scope: Scope,
) -> EnrollmentResult:
    """Close the active enrollment in the current class and open one in the new class."""
    return await service.promote(
        student_id=data.student_id,
        current_class_id=data.current_class_id,
        new_class_id=data.new_class_id,
        academic_year_id=data.academic_year_id,
        scope=scope,
        stream_id=data.stream_id,
        elective_class_subject_ids=data.elective_class_subject_ids,
    )


@router.post(
    "/transfer",
    response_model=TransferResult,
    summary="Transfer student",
)
async def transfer_student(
    data: TransferRequest,
    service: Enrollments,
    scope: Scope,
) -> TransferResult:
    """Move a student and close their active enrollments."""
    return await service.transfer(
        student_id=data.student_id,
        new_school_id=data.new_school_id,
        reason=data.reason,
        transfer_date=data.transfer_date,
        scope=scope,
    )


@router.get(
    "/students/{student_id}/history",
    response_model=list[EnrollmentResponse],
    summary="Enrollment history",
)
async def enrollment_history(
    student_id: str,
    service: Enrollments,
    scope: Scope,
) -> list[EnrollmentResponse]:
    """All enrollments of a student, newest first."""
    return await service.history(student_id, scope)


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: str,
    service: Enrollments,
    scope: Scope,
) -> EnrollmentResponse:
    """Get enrollment details."""
    return await service.get_enrollment(enrollment_id, scope)


@router.patch(
    "/{enrollment_id}/status",
    response_model=EnrollmentResponse,
    summary="Update enrollment status",
)
async def update_enrollment_status(
    enrollment_id: str,
    data: UpdateEnrollmentStatusRequest,
    service: Enrollments,
    scope: Scope,
) -> EnrollmentResponse:
    """Administrative status correction."""
    return await service.update_status(
        enrollment_id=enrollment_id,
        status=data.status,
        scope=scope,
        force=data.force,
    )
