# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed error kinds shared by the domain services.

Every error raised by a domain service carries one of five kinds. Domain
modules subclass these together with their own service error base, so a
caller can catch either the domain family or the kind:

    class EnrollmentNotFoundError(EnrollmentServiceError, NotFoundError):
        ...

Out-of-scope and absent records both surface as NotFoundError so callers
cannot probe for rows owned by another tenant.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure visible to callers."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation_error"
    ACCESS_DENIED = "access_denied"
    TRANSIENT = "transient_store_error"


class RecordsError(Exception):
    """Base exception for all school records errors.

    Attributes:
        kind: Error kind used by the API layer to choose a status code.
        message: Human-readable message safe to show to callers.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
        self.message = message


class NotFoundError(RecordsError):
    """Referenced record is absent or outside the caller's tenant scope."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(RecordsError):
    """Record already exists or a concurrent writer won the race."""

    kind = ErrorKind.CONFLICT


class ValidationError(RecordsError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION


class AccessDeniedError(RecordsError):
    """Attempted write across a tenant boundary."""

    kind = ErrorKind.ACCESS_DENIED


class TransientStoreError(RecordsError):
    """Transaction conflict that is safe to retry."""

    kind = ErrorKind.TRANSIENT
