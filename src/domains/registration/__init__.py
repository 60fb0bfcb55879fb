# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration domain.

Exports:
    RegistrationService: Student and teacher creation with minted numbers.
"""

from src.domains.registration.service import (
    AdmissionNumberExistsError,
    RegistrationService,
    RegistrationServiceError,
    SchoolRequiredError,
)

__all__ = [
    "RegistrationService",
    "RegistrationServiceError",
    "AdmissionNumberExistsError",
    "SchoolRequiredError",
]
