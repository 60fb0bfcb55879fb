# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides the enrollment lifecycle:
- Enrollment of a student in a class, stream and academic year
- Promotion and school transfer
- Administrative status correction and history
"""

from src.domains.enrollment.service import (
    ALLOWED_TRANSITIONS,
    AlreadyEnrolledError,
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentServiceError,
    InvalidPromotionError,
    InvalidTransitionError,
    NotEnrolledError,
    SameSchoolTransferError,
    SchoolMismatchError,
    is_allowed_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "EnrollmentService",
    "EnrollmentServiceError",
    "AlreadyEnrolledError",
    "EnrollmentNotFoundError",
    "InvalidPromotionError",
    "InvalidTransitionError",
    "NotEnrolledError",
    "SameSchoolTransferError",
    "SchoolMismatchError",
    "is_allowed_transition",
]
