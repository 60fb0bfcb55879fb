# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog lookup domain.

Exports:
    CatalogService: Tenant-scoped reads of classes, streams, years and
        class-subject bindings.
"""

from src.domains.catalog.service import (
    AcademicYearNotFoundError,
    CatalogService,
    CatalogServiceError,
    ClassNotFoundError,
    ClassSubjectNotFoundError,
    SchoolNotFoundError,
    StreamClassMismatchError,
    StreamNotFoundError,
    StudentNotFoundError,
)

__all__ = [
    "CatalogService",
    "CatalogServiceError",
    "AcademicYearNotFoundError",
    "ClassNotFoundError",
    "ClassSubjectNotFoundError",
    "SchoolNotFoundError",
    "StreamClassMismatchError",
    "StreamNotFoundError",
    "StudentNotFoundError",
]
