# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject enrollment and class-subject binding API models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.infrastructure.database.models.enrollment import SubjectEnrollmentStatus
from src.infrastructure.database.models.school import SubjectCategory


class ClassSubjectResponse(BaseModel):
    """A subject offered within a class."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    class_id: str
    stream_id: str | None = None
    subject_id: str
    academic_year_id: str | None = None
    term_id: str | None = None
    teacher_id: str | None = None
    category: SubjectCategory


class ClassSubjectListResponse(BaseModel):
    """List of class-subject bindings."""

    items: list[ClassSubjectResponse]
    total: int


class SubjectEnrollmentResponse(BaseModel):
    """A student's enrollment in one class-subject binding."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    student_id: str
    enrollment_id: str
    class_subject_id: str
    status: SubjectEnrollmentStatus
    enrolled_at: datetime | None = None
    dropped_at: datetime | None = None


class SubjectEnrollmentListResponse(BaseModel):
    """Paginated subject enrollment list."""

    items: list[SubjectEnrollmentResponse]
    total: int
    limit: int
    offset: int


class EnrollInSubjectRequest(BaseModel):
    """Request to enroll a student in one subject."""

    student_id: str
    class_subject_id: str
    enrollment_id: str


class BulkSubjectEnrollRequest(BaseModel):
    """Request to enroll several enrollments in one subject."""

    enrollment_ids: list[str] = Field(..., min_length=1)
    class_subject_id: str


class BulkSubjectEnrollResponse(BaseModel):
    """Result of a bulk subject enrollment."""

    class_subject_id: str
    items: list[SubjectEnrollmentResponse]
    count: int


class DropSubjectRequest(BaseModel):
    """Request to drop a subject."""

    enrollment_id: str
    class_subject_id: str


class UpdateSubjectStatusRequest(BaseModel):
    """Request to set the status of a subject enrollment."""

    enrollment_id: str
    class_subject_id: str
    status: SubjectEnrollmentStatus
