# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject enrollment domain.

Exports:
    SubjectEnrollmentService: Per-subject enrollment operations.
"""

from src.domains.subject_enrollment.service import (
    AlreadyEnrolledInSubjectError,
    BindingClassMismatchError,
    CrossTenantBindingError,
    EnrollmentNotFoundError,
    StudentMismatchError,
    SubjectEnrollmentNotFoundError,
    SubjectEnrollmentService,
    SubjectEnrollmentServiceError,
)

__all__ = [
    "SubjectEnrollmentService",
    "SubjectEnrollmentServiceError",
    "AlreadyEnrolledInSubjectError",
    "BindingClassMismatchError",
    "CrossTenantBindingError",
    "EnrollmentNotFoundError",
    "StudentMismatchError",
    "SubjectEnrollmentNotFoundError",
]
