# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student and teacher registration API models."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class RegisterStudentRequest(BaseModel):
    """Request to register a student.

    An admission number is minted when none is supplied.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date | None = None
    admission_number: str | None = Field(None, min_length=1, max_length=50)
    school_id: str | None = Field(None, description="Target school (superuser only)")


class RegisterTeacherRequest(BaseModel):
    """Request to register a teacher. The employee number is always minted."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    school_id: str | None = Field(None, description="Target school (superuser only)")


class StudentResponse(BaseModel):
    """Registered student."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    admission_number: str
    first_name: str
    last_name: str
    date_of_birth: date | None = None


class TeacherResponse(BaseModel):
    """Registered teacher."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    employee_number: str
    first_name: str
    last_name: str
    email: str | None = None
