# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API models."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from src.infrastructure.database.models.enrollment import EnrollmentStatus
from src.models.subject_enrollment import SubjectEnrollmentResponse


class EnrollRequest(BaseModel):
    """Request to enroll a student in a class."""

    student_id: str
    class_id: str
    stream_id: str | None = None
    academic_year_id: str
    elective_class_subject_ids: list[str] = Field(
        default_factory=list, description="Electives to attach after core subjects"
    )


class PromoteRequest(BaseModel):
    """Request to promote a student to another class."""

    student_id: str
    current_class_id: str
    new_class_id: str
    academic_year_id: str = Field(..., description="Academic year of the new class")
    stream_id: str | None = None
    elective_class_subject_ids: list[str] = Field(default_factory=list)


class TransferRequest(BaseModel):
    """Request to transfer a student to another school."""

    student_id: str
    new_school_id: str
    reason: str = Field(..., min_length=1, max_length=1000)
    transfer_date: date


class UpdateEnrollmentStatusRequest(BaseModel):
    """Administrative status correction.

    force skips the transition check.
    """

    status: EnrollmentStatus
    force: bool = False


class EnrollmentResponse(BaseModel):
    """Enrollment details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    student_id: str
    class_id: str
    stream_id: str | None = None
    academic_year_id: str
    status: EnrollmentStatus
    enrolled_at: datetime | None = None
    promoted_to_id: str | None = None
    promotion_date: datetime | None = None
    transfer_date: date | None = None
    transfer_reason: str | None = None


class EnrollmentResult(BaseModel):
    """Outcome of enroll or promote.

    subjects_complete is False when subject attachment partly failed; the
    enrollment itself is still committed.
    """

    enrollment: EnrollmentResponse
    subject_enrollments: list[SubjectEnrollmentResponse] = Field(default_factory=list)
    subjects_complete: bool = True
    warnings: list[str] = Field(default_factory=list)


class TransferResult(BaseModel):
    """Outcome of a school transfer."""

    student_id: str
    from_school_id: str
    to_school_id: str
    transferred_enrollments: int


class EnrollmentListResponse(BaseModel):
    """Paginated enrollment list."""

    items: list[EnrollmentResponse]
    total: int
    limit: int
    offset: int
