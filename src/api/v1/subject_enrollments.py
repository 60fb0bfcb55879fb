# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject enrollment API endpoints.

This module provides endpoints for per-subject enrollment:
- POST / - Enroll in one subject
- POST /bulk - Enroll many enrollments in one subject
- POST /drop - Drop a subject
- PATCH /status - Set the status of a subject enrollment
- GET /enrollments/{enrollment_id} - Subjects of an enrollment
- GET /enrollments/{enrollment_id}/electives - Electives still available
- GET /class-subjects/{class_subject_id} - Students in a subject
- GET /students/{student_id} - Subjects of a student across enrollments
"""

import logging

from fastapi import APIRouter, Query, status

from src.api.dependencies import Scope, SubjectEnrollments
from src.infrastructure.database.models.enrollment import SubjectEnrollmentStatus
from src.models.subject_enrollment import (
    BulkSubjectEnrollRequest,
    BulkSubjectEnrollResponse,
    ClassSubjectListResponse,
    DropSubjectRequest,
    EnrollInSubjectRequest,
    SubjectEnrollmentListResponse,
    SubjectEnrollmentResponse,
    UpdateSubjectStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=SubjectEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in subject",
)
async def enroll_in_subject(
    data: EnrollInSubjectRequest,
    service: SubjectEnrollments,
    scope: Scope,
) -> SubjectEnrollmentResponse:
    """Attach one class-subject binding to an enrollment."""
    return await service.enroll_in_subject(
        student_id=data.student_id,
        class_subject_id=data.class_subject_id,
        enrollment_id=data.enrollment_id,
        scope=scope,
    )


@router.post(
    "/bulk",
    response_model=BulkSubjectEnrollResponse,
    summary="Bulk enroll in subject",
)
async def bulk_enroll(
    data: BulkSubjectEnrollRequest,
    service: SubjectEnrollments,
    scope: Scope,
) -> BulkSubjectEnrollResponse:
    """Attach one binding to many enrollments; already attached rows are kept."""
    items = await service.bulk_enroll(data.enrollment_ids, data.class_subject_id, scope)
    return BulkSubjectEnrollResponse(
        class_subject_id=data.class_subject_id,
        items=items,
        count=len(items),
    )


@router.post(
    "/drop",
    response_model=SubjectEnrollmentResponse,
    summary="Drop subject",
)
async def drop_subject(
    data: DropSubjectRequest,
    service: SubjectEnrollments,
    scope: Scope,
) -> SubjectEnrollmentResponse:
    """Mark a subject enrollment as dropped."""
    return await service.drop(data.enrollment_id, data.class_subject_id, scope)


@router.patch(
    "/status",
    response_model=SubjectEnrollmentResponse,
    summary="Update subject enrollment status",
)
async def update_subject_status(
    data: UpdateSubjectStatusRequest,
    service: SubjectEnrollments,
    scope: Scope,
) -> SubjectEnrollmentResponse:
    """Set the status of a subject enrollment (completed, failed, ...)."""
    return await service.update_status(
        enrollment_id=data.enrollment_id,
        class_subject_id=data.class_subject_id,
        status=data.status,
        scope=scope,
    )


@router.get(
    "/enrollments/{enrollment_id}",
    response_model=SubjectEnrollmentListResponse,
    summary="List subjects of an enrollment",
)
async def list_for_enrollment(
    enrollment_id: str,
    service: SubjectEnrollments,
    scope: Scope,
    subject_status: SubjectEnrollmentStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> SubjectEnrollmentListResponse:
    """Subject enrollments attached to one enrollment."""
    items, total = await service.list_for_enrollment(
        enrollment_id, scope, status=subject_status, limit=limit, offset=offset
    )
    return SubjectEnrollmentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/enrollments/{enrollment_id}/electives",
    response_model=ClassSubjectListResponse,
    summary="Available electives",
)
async def available_electives(
    enrollment_id: str,
    service: SubjectEnrollments,
    scope: Scope,
    class_id: str = Query(..., description="Class of the enrollment"),
) -> ClassSubjectListResponse:
    """Non-core bindings of the class not yet attached to the enrollment."""
    items = await service.available_electives(enrollment_id, class_id, scope)
    return ClassSubjectListResponse(items=items, total=len(items))


@router.get(
    "/class-subjects/{class_subject_id}",
    response_model=SubjectEnrollmentListResponse,
    summary="List students in a subject",
)
async def list_for_binding(
    class_subject_id: str,
    service: SubjectEnrollments,
    scope: Scope,
    subject_status: SubjectEnrollmentStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> SubjectEnrollmentListResponse:
    """Subject enrollments of one class-subject binding."""
    items, total = await service.list_for_binding(
        class_subject_id, scope, status=subject_status, limit=limit, offset=offset
    )
    return SubjectEnrollmentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/students/{student_id}",
    response_model=list[SubjectEnrollmentResponse],
    summary="List subjects of a student",
)
async def list_for_student(
    student_id: str,
    service: SubjectEnrollments,
    scope: Scope,
) -> list[SubjectEnrollmentResponse]:
    """Active subject enrollments of a student across all enrollments."""
    return await service.list_for_student(student_id, scope)
