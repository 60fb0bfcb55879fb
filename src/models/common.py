# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Common schemas shared across API models."""

from pydantic import BaseModel, Field

from src.core.errors import ErrorKind


class ErrorResponse(BaseModel):
    """Error body returned for every domain failure."""

    error: ErrorKind = Field(..., description="Error kind")
    message: str = Field(..., description="Human-readable message")


class PageParams(BaseModel):
    """Pagination parameters."""

    limit: int = Field(default=50, ge=1, le=500, description="Page size")
    offset: int = Field(default=0, ge=0, description="Page offset")
