# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequence registry API models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SequenceKind(str, Enum):
    """Named counter series."""

    ADMISSION_NUMBER = "ADMISSION_NUMBER"
    EMPLOYEE_NUMBER = "EMPLOYEE_NUMBER"
    RECEIPT_NUMBER = "RECEIPT_NUMBER"
    INVOICE_NUMBER = "INVOICE_NUMBER"
    ASSESSMENT_NUMBER = "ASSESSMENT_NUMBER"
    CLASS_CODE = "CLASS_CODE"


class SequenceValueResponse(BaseModel):
    """A minted or previewed identifier."""

    kind: SequenceKind
    identifier: str


class SequenceCurrentResponse(BaseModel):
    """Raw counter value of a sequence key."""

    kind: SequenceKind
    current_value: int | None = Field(None, description="Absent until first use")


class SequenceBatchRequest(BaseModel):
    """Request to mint several identifiers.

    count is validated by the registry against the configured batch range.
    """

    count: int
    school_id: str | None = Field(None, description="Target school (superuser only)")


class SequenceBatchResponse(BaseModel):
    """Identifiers minted by a batch request, in increasing order."""

    kind: SequenceKind
    numbers: list[str]
    count: int


class SequenceResetRequest(BaseModel):
    """Administrative counter reset."""

    start_value: int
    school_id: str | None = Field(None, description="Target school (superuser only)")


class SchoolSequenceStats(BaseModel):
    """Counter state of one sequence row."""

    school_id: str | None
    year: int | None
    current_value: int
    last_generated_at: datetime | None


class SequenceStatsResponse(BaseModel):
    """Per-kind counter statistics."""

    kind: SequenceKind
    total: int
    by_school: list[SchoolSequenceStats]
