# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for the records database."""

from src.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    new_id,
)
from src.infrastructure.database.models.enrollment import (
    Enrollment,
    EnrollmentStatus,
    SubjectEnrollment,
    SubjectEnrollmentStatus,
)
from src.infrastructure.database.models.school import (
    AcademicYear,
    ClassSubject,
    School,
    SchoolClass,
    Stream,
    Student,
    Subject,
    SubjectCategory,
    Teacher,
    Term,
)
from src.infrastructure.database.models.sequence import Sequence

__all__ = [
    # Base
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "new_id",
    # School structure
    "School",
    "Student",
    "Teacher",
    "AcademicYear",
    "Term",
    "SchoolClass",
    "Stream",
    "Subject",
    "ClassSubject",
    "SubjectCategory",
    # Enrollment
    "Enrollment",
    "EnrollmentStatus",
    "SubjectEnrollment",
    "SubjectEnrollmentStatus",
    # Sequence
    "Sequence",
]
