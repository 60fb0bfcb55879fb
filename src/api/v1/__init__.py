# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Each module provides a FastAPI router for a specific domain.

Modules:
    enrollments: Enrollment lifecycle (enroll, promote, transfer, status).
    subject_enrollments: Per-subject enrollment and elective discovery.
    sequences: Identifier minting and counter administration.
    registrations: Student and teacher registration.
"""

from fastapi import APIRouter

from src.api.v1 import enrollments, registrations, sequences, subject_enrollments

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
router.include_router(
    subject_enrollments.router, prefix="/subject-enrollments", tags=["Subject Enrollments"]
)
router.include_router(sequences.router, prefix="/sequences", tags=["Sequences"])
router.include_router(registrations.router, prefix="/registrations", tags=["Registrations"])
