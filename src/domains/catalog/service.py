# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog lookups used by the enrollment services.

This module provides the CatalogService class for:
- Tenant-scoped lookups of students, classes, streams and academic years
- Class-subject binding queries (core subjects, electives)

The catalog itself (schools, subjects, years, terms) is maintained
elsewhere; this service only reads it. Every lookup applies the caller's
TenantScope, and a row outside the scope is reported exactly like a missing
row.
"""

from __future__ import annotations

import logging
from typing import Sequence as SequenceType

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import NotFoundError, ValidationError
from src.domains.tenancy.scope import TenantScope
from src.infrastructure.database.models.school import (
    AcademicYear,
    ClassSubject,
    School,
    SchoolClass,
    Stream,
    Student,
    SubjectCategory,
)

logger = logging.getLogger(__name__)


class CatalogServiceError(Exception):
    """Base exception for catalog lookup errors."""

    pass


class StudentNotFoundError(CatalogServiceError, NotFoundError):
    """Raised when student is not found."""

    pass


class ClassNotFoundError(CatalogServiceError, NotFoundError):
    """Raised when class is not found."""

    pass


class StreamNotFoundError(CatalogServiceError, NotFoundError):
    """Raised when stream is not found."""

    pass


class AcademicYearNotFoundError(CatalogServiceError, NotFoundError):
    """Raised when academic year is not found."""

    pass


class SchoolNotFoundError(CatalogServiceError, NotFoundError):
    """Raised when school is not found or inactive."""

    pass


class ClassSubjectNotFoundError(CatalogServiceError, NotFoundError):
    """Raised when class-subject binding is not found."""

    pass


class StreamClassMismatchError(CatalogServiceError, ValidationError):
    """Raised when a stream does not belong to the given class."""

    pass


class CatalogService:
    """Read-only, tenant-scoped catalog lookups.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize catalog service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def get_student(self, student_id: str, scope: TenantScope) -> Student:
        """Get a student visible to the scope.

        Raises:
            StudentNotFoundError: If absent, soft-deleted or out of scope.
        """
        result = await self.db.execute(
            select(Student).where(
                Student.id == student_id,
                Student.deleted_at.is_(None),
                scope.where(Student.school_id),
            )
        )
        student = result.scalar_one_or_none()
        if not student:
            raise StudentNotFoundError(f"Student {student_id} not found")
        return student

    async def get_class(self, class_id: str, scope: TenantScope) -> SchoolClass:
        """Get a class visible to the scope.

        Raises:
            ClassNotFoundError: If absent or out of scope.
        """
        result = await self.db.execute(
            select(SchoolClass).where(
                SchoolClass.id == class_id,
                scope.where(SchoolClass.school_id),
            )
        )
        class_ = result.scalar_one_or_none()
        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")
        return class_

    async def get_academic_year(self, academic_year_id: str, scope: TenantScope) -> AcademicYear:
        """Get an academic year visible to the scope.

        Raises:
            AcademicYearNotFoundError: If absent or out of scope.
        """
        result = await self.db.execute(
            select(AcademicYear).where(
                AcademicYear.id == academic_year_id,
                scope.where(AcademicYear.school_id),
            )
        )
        year = result.scalar_one_or_none()
        if not year:
            raise AcademicYearNotFoundError(f"Academic year {academic_year_id} not found")
        return year

    async def get_stream(self, stream_id: str, class_id: str, scope: TenantScope) -> Stream:
        """Get a stream and check it belongs to class_id.

        Raises:
            StreamNotFoundError: If absent or out of scope.
            StreamClassMismatchError: If the stream belongs to another class.
        """
        result = await self.db.execute(
            select(Stream).where(
                Stream.id == stream_id,
                scope.where(Stream.school_id),
            )
        )
        stream = result.scalar_one_or_none()
        if not stream:
            raise StreamNotFoundError(f"Stream {stream_id} not found")
        if stream.class_id != class_id:
            raise StreamClassMismatchError(
                f"Stream {stream_id} does not belong to class {class_id}"
            )
        return stream

    async def get_active_school(self, school_id: str) -> School:
        """Get an active school by id.

        Schools are the tenants themselves, so no scope applies.

        Raises:
            SchoolNotFoundError: If absent or inactive.
        """
        result = await self.db.execute(
            select(School).where(School.id == school_id, School.is_active.is_(True))
        )
        school = result.scalar_one_or_none()
        if not school:
            raise SchoolNotFoundError(f"School {school_id} not found")
        return school

    async def get_class_subject(self, class_subject_id: str, scope: TenantScope) -> ClassSubject:
        """Get a class-subject binding visible to the scope.

        Raises:
            ClassSubjectNotFoundError: If absent or out of scope.
        """
        result = await self.db.execute(
            select(ClassSubject).where(
                ClassSubject.id == class_subject_id,
                scope.where(ClassSubject.school_id),
            )
        )
        binding = result.scalar_one_or_none()
        if not binding:
            raise ClassSubjectNotFoundError(f"Class subject {class_subject_id} not found")
        return binding

    async def core_bindings(
        self,
        class_id: str,
        scope: TenantScope,
        stream_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> SequenceType[ClassSubject]:
        """Get the CORE bindings every student of a class must take.

        Bindings without a stream apply to all streams; bindings without an
        academic year apply to every year.

        Args:
            class_id: Class identifier.
            scope: Caller's tenant scope.
            stream_id: Student's stream, if any.
            academic_year_id: Academic year of the enrollment, if known.

        Returns:
            Core bindings ordered by creation.
        """
        return await self.bindings(
            class_id,
            scope,
            categories=[SubjectCategory.CORE],
            stream_id=stream_id,
            academic_year_id=academic_year_id,
        )

    async def bindings(
        self,
        class_id: str,
        scope: TenantScope,
        categories: list[SubjectCategory] | None = None,
        exclude_categories: list[SubjectCategory] | None = None,
        stream_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> SequenceType[ClassSubject]:
        """Get the bindings of a class, optionally filtered by category.

        Args:
            class_id: Class identifier.
            scope: Caller's tenant scope.
            categories: Only these categories.
            exclude_categories: Everything except these categories.
            stream_id: Narrow to bindings for this stream or for all streams.
            academic_year_id: Narrow to bindings for this year or for all years.

        Returns:
            Matching bindings ordered by creation.
        """
        query = select(ClassSubject).where(
            ClassSubject.class_id == class_id,
            scope.where(ClassSubject.school_id),
        )
        if categories:
            query = query.where(ClassSubject.category.in_([c.value for c in categories]))
        if exclude_categories:
            query = query.where(
                ClassSubject.category.not_in([c.value for c in exclude_categories])
            )
        if stream_id:
            query = query.where(
                or_(ClassSubject.stream_id.is_(None), ClassSubject.stream_id == stream_id)
            )
        if academic_year_id:
            query = query.where(
                or_(
                    ClassSubject.academic_year_id.is_(None),
                    ClassSubject.academic_year_id == academic_year_id,
                )
            )
        query = query.order_by(ClassSubject.created_at, ClassSubject.id)

        result = await self.db.execute(query)
        return result.scalars().all()
