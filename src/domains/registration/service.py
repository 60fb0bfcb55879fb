# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration service for students and teachers.

This module provides the RegistrationService class for:
- Student registration with a supplied or minted admission number
- Teacher registration with a minted employee number

Identifiers are minted in their own transaction before the record is
created. If creation then fails the number is burnt, leaving a gap, which is
acceptable; a number is never handed out twice.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import ConflictError, ValidationError
from src.domains.catalog.service import CatalogService
from src.domains.sequence.service import SequenceService
from src.domains.tenancy.scope import TenantScope
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.school import Student, Teacher
from src.infrastructure.database.transactions import run_in_transaction
from src.models.registration import (
    RegisterStudentRequest,
    RegisterTeacherRequest,
    StudentResponse,
    TeacherResponse,
)

logger = logging.getLogger(__name__)


class RegistrationServiceError(Exception):
    """Base exception for registration service errors."""

    pass


class AdmissionNumberExistsError(RegistrationServiceError, ConflictError):
    """Raised when a supplied admission number is already taken."""

    pass


class SchoolRequiredError(RegistrationServiceError, ValidationError):
    """Raised when no target school can be determined."""

    pass


class RegistrationService:
    """Service for creating students and teachers.

    Attributes:
        db: Async database session.
        sequences: Sequence registry used to mint identifiers.
        catalog: Catalog lookups sharing the same session.
    """

    def __init__(
        self,
        db: AsyncSession,
        sequences: SequenceService | None = None,
        catalog: CatalogService | None = None,
    ) -> None:
        """Initialize registration service.

        Args:
            db: Async database session.
            sequences: Sequence service; one is created on db when omitted.
            catalog: Catalog service; one is created on db when omitted.
        """
        self.db = db
        self.sequences = sequences or SequenceService(db)
        self.catalog = catalog or CatalogService(db)

    async def register_student(
        self,
        request: RegisterStudentRequest,
        scope: TenantScope,
    ) -> StudentResponse:
        """Register a student.

        Args:
            request: Student data. admission_number is minted when omitted.
            scope: Caller's tenant scope.

        Returns:
            The created student.

        Raises:
            AccessDeniedError: If registering into another school.
            SchoolNotFoundError: If the school is absent or inactive.
            AdmissionNumberExistsError: If the supplied number is taken.
        """
        school_id = self._target_school(scope, request.school_id)
        await self.catalog.get_active_school(school_id)

        admission_number = request.admission_number
        if admission_number:
            await self._ensure_admission_number_free(admission_number)
        else:
            admission_number = await self.sequences.next_admission_number(school_id)
            logger.info(
                "Auto-generated admission number: %s, school=%s",
                admission_number,
                school_id,
            )

        async def _create(session: AsyncSession) -> Student:
            student = Student(
                id=new_id(),
                school_id=school_id,
                admission_number=admission_number,
                first_name=request.first_name,
                last_name=request.last_name,
                date_of_birth=request.date_of_birth,
            )
            session.add(student)
            await session.flush()
            return student

        student = await run_in_transaction(self.db, _create)

        logger.info(
            "Student registered: student=%s, admission_number=%s, school=%s",
            student.id,
            admission_number,
            school_id,
        )

        return StudentResponse.model_validate(student)

    async def register_teacher(
        self,
        request: RegisterTeacherRequest,
        scope: TenantScope,
    ) -> TeacherResponse:
        """Register a teacher with a freshly minted employee number.

        Raises:
            AccessDeniedError: If registering into another school.
            SchoolNotFoundError: If the school is absent or inactive.
        """
        school_id = self._target_school(scope, request.school_id)
        await self.catalog.get_active_school(school_id)

        employee_number = await self.sequences.next_employee_number(school_id)

        async def _create(session: AsyncSession) -> Teacher:
            teacher = Teacher(
                id=new_id(),
                school_id=school_id,
                employee_number=employee_number,
                first_name=request.first_name,
                last_name=request.last_name,
                email=request.email,
            )
            session.add(teacher)
            await session.flush()
            return teacher

        teacher = await run_in_transaction(self.db, _create)

        logger.info(
            "Teacher registered: teacher=%s, employee_number=%s, school=%s",
            teacher.id,
            employee_number,
            school_id,
        )

        return TeacherResponse.model_validate(teacher)

    async def _ensure_admission_number_free(self, admission_number: str) -> None:
        result = await self.db.execute(
            select(Student.id).where(Student.admission_number == admission_number)
        )
        if result.scalar_one_or_none():
            raise AdmissionNumberExistsError(
                f"Student with admission number {admission_number} already exists"
            )

    @staticmethod
    def _target_school(scope: TenantScope, requested: str | None) -> str:
        """Pick the school a new record is created in."""
        school_id = requested or scope.tenant_id
        if not school_id:
            raise SchoolRequiredError("school_id is required")
        scope.require_write(school_id)
        return school_id
