# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Subject enrollment service.

This module provides the SubjectEnrollmentService class for:
- Automatic enrollment in a class's core subjects
- Individual and bulk enrollment in class-subject bindings
- Dropping subjects and setting final statuses
- Elective discovery and paginated listings

A subject enrollment is unique per (student, binding, enrollment). Dropping
and re-enrolling reactivates the existing row instead of inserting another.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from src.domains.catalog.service import CatalogService
from src.domains.tenancy.scope import TenantScope
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.enrollment import (
    Enrollment,
    SubjectEnrollment,
    SubjectEnrollmentStatus,
)
from src.infrastructure.database.models.school import ClassSubject, SubjectCategory
from src.infrastructure.database.transactions import run_in_transaction
from src.models.subject_enrollment import ClassSubjectResponse, SubjectEnrollmentResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

UNIQUE_CONSTRAINT = "uq_subject_enrollments_student_binding_enrollment"


def binding_applies(
    binding: ClassSubject,
    stream_id: str | None,
    academic_year_id: str | None,
) -> bool:
    """Check whether a binding is offered to a placement.

    A binding without a stream or academic year applies to all of them;
    otherwise it must match the placement exactly.
    """
    if binding.stream_id is not None and binding.stream_id != stream_id:
        return False
    if binding.academic_year_id is not None and binding.academic_year_id != academic_year_id:
        return False
    return True


class SubjectEnrollmentServiceError(Exception):
    """Base exception for subject enrollment service errors."""

    pass


class EnrollmentNotFoundError(SubjectEnrollmentServiceError, NotFoundError):
    """Raised when the parent enrollment is not found."""

    pass


class SubjectEnrollmentNotFoundError(SubjectEnrollmentServiceError, NotFoundError):
    """Raised when no subject enrollment matches."""

    pass


class AlreadyEnrolledInSubjectError(SubjectEnrollmentServiceError, ConflictError):
    """Raised when the student already holds the subject under this enrollment."""

    pass


class BindingClassMismatchError(SubjectEnrollmentServiceError, ValidationError):
    """Raised when a binding does not belong to the enrollment's class."""

    pass


class StudentMismatchError(SubjectEnrollmentServiceError, ValidationError):
    """Raised when the student is not the enrollment's student."""

    pass


class CrossTenantBindingError(SubjectEnrollmentServiceError, AccessDeniedError):
    """Raised when binding and enrollment belong to different schools."""

    pass


class SubjectEnrollmentService:
    """Service for per-subject enrollments nested under an enrollment.

    Attributes:
        db: Async database session.
        catalog: Catalog lookups sharing the same session.
    """

    def __init__(self, db: AsyncSession, catalog: CatalogService | None = None) -> None:
        """Initialize subject enrollment service.

        Args:
            db: Async database session.
            catalog: Catalog service; one is created on db when omitted.
        """
        self.db = db
        self.catalog = catalog or CatalogService(db)
        self._isolation_level = get_settings().database.isolation_level

    async def auto_enroll_core(
        self,
        enrollment_id: str,
        class_id: str,
        scope: TenantScope,
        student_id: str,
        stream_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> list[SubjectEnrollmentResponse]:
        """Enroll a student in every core subject of a class.

        All rows are created in one transaction. Bindings the enrollment is
        already attached to are skipped.

        Args:
            enrollment_id: Parent enrollment.
            class_id: Class whose core subjects to attach.
            scope: Caller's tenant scope.
            student_id: Enrolled student.
            stream_id: Student's stream, narrows stream-specific bindings.
            academic_year_id: Enrollment year, narrows year-specific bindings.

        Returns:
            The created subject enrollments.
        """

        async def _attach(session: AsyncSession) -> list[SubjectEnrollment]:
            bindings = await self.catalog.core_bindings(
                class_id, scope, stream_id=stream_id, academic_year_id=academic_year_id
            )
            attached = await self._attached_binding_ids(enrollment_id)
            now = utc_now()

            created = []
            for binding in bindings:
                if binding.id in attached:
                    continue
                if not binding_applies(binding, stream_id, academic_year_id):
                    continue
                row = SubjectEnrollment(
                    id=new_id(),
                    school_id=binding.school_id,
                    student_id=student_id,
                    enrollment_id=enrollment_id,
                    class_subject_id=binding.id,
                    status=SubjectEnrollmentStatus.ACTIVE.value,
                    enrolled_at=now,
                )
                session.add(row)
                created.append(row)

            await session.flush()
            return created

        created = await run_in_transaction(
            self.db, _attach, isolation_level=self._isolation_level
        )

        logger.info(
            "Auto-enrolled core subjects: enrollment=%s, class=%s, count=%d",
            enrollment_id,
            class_id,
            len(created),
        )

        return [self._to_response(row) for row in created]

    async def enroll_in_subject(
        self,
        student_id: str,
        class_subject_id: str,
        enrollment_id: str,
        scope: TenantScope,
    ) -> SubjectEnrollmentResponse:
        """Enroll a student in one class-subject binding.

        A previously dropped row is reactivated.

        Raises:
            EnrollmentNotFoundError: If the enrollment is absent or out of scope.
            ClassSubjectNotFoundError: If the binding is absent or out of scope.
            StudentMismatchError: If the enrollment belongs to another student.
            BindingClassMismatchError: If the binding is for another class,
                stream or academic year.
            CrossTenantBindingError: If binding and enrollment schools differ.
            AlreadyEnrolledInSubjectError: If a non-dropped row exists.
        """

        async def _enroll(session: AsyncSession) -> SubjectEnrollment:
            enrollment = await self._get_enrollment(enrollment_id, scope)
            if enrollment.student_id != student_id:
                raise StudentMismatchError(
                    f"Enrollment {enrollment_id} does not belong to student {student_id}"
                )

            binding = await self.catalog.get_class_subject(class_subject_id, scope)
            self._check_binding(binding, enrollment)

            existing = await self._find(student_id, class_subject_id, enrollment_id)
            now = utc_now()

            if existing:
                if existing.status != SubjectEnrollmentStatus.DROPPED.value:
                    raise AlreadyEnrolledInSubjectError(
                        "Student is already enrolled in this subject"
                    )
                existing.status = SubjectEnrollmentStatus.ACTIVE.value
                existing.dropped_at = None
                existing.enrolled_at = now
                await session.flush()
                logger.info(
                    "Reactivated subject enrollment: student=%s, binding=%s, enrollment=%s",
                    student_id,
                    class_subject_id,
                    enrollment_id,
                )
                return existing

            row = SubjectEnrollment(
                id=new_id(),
                school_id=enrollment.school_id,
                student_id=student_id,
                enrollment_id=enrollment_id,
                class_subject_id=class_subject_id,
                status=SubjectEnrollmentStatus.ACTIVE.value,
                enrolled_at=now,
            )
            session.add(row)
            await session.flush()
            logger.info(
                "Enrolled in subject: student=%s, binding=%s, enrollment=%s",
                student_id,
                class_subject_id,
                enrollment_id,
            )
            return row

        row = await run_in_transaction(self.db, _enroll, isolation_level=self._isolation_level)
        return self._to_response(row)

    async def bulk_enroll(
        self,
        enrollment_ids: list[str],
        class_subject_id: str,
        scope: TenantScope,
    ) -> list[SubjectEnrollmentResponse]:
        """Upsert ACTIVE subject enrollments for several enrollments.

        Runs as one transaction; existing rows are set back to ACTIVE with
        dropped_at cleared.

        Raises:
            ClassSubjectNotFoundError: If the binding is absent or out of scope.
            EnrollmentNotFoundError: If any enrollment is absent or out of scope.
            BindingClassMismatchError: If any enrollment is in another class,
                stream or academic year.
            CrossTenantBindingError: If any enrollment is in another school.
        """
        unique_ids = list(dict.fromkeys(enrollment_ids))
        if not unique_ids:
            raise ValidationError("At least one enrollment is required")

        async def _bulk(session: AsyncSession) -> list[SubjectEnrollment]:
            binding = await self.catalog.get_class_subject(class_subject_id, scope)

            result = await session.execute(
                select(Enrollment).where(
                    Enrollment.id.in_(unique_ids),
                    scope.where(Enrollment.school_id),
                )
            )
            enrollments = result.scalars().all()

            missing = set(unique_ids) - {e.id for e in enrollments}
            if missing:
                raise EnrollmentNotFoundError(
                    f"Enrollments not found: {', '.join(sorted(missing))}"
                )
            for enrollment in enrollments:
                self._check_binding(binding, enrollment)

            now = utc_now()
            stmt = (
                insert(SubjectEnrollment)
                .values(
                    [
                        {
                            "id": new_id(),
                            "school_id": e.school_id,
                            "student_id": e.student_id,
                            "enrollment_id": e.id,
                            "class_subject_id": class_subject_id,
                            "status": SubjectEnrollmentStatus.ACTIVE.value,
                            "enrolled_at": now,
                        }
                        for e in enrollments
                    ]
                )
                .on_conflict_do_update(
                    constraint=UNIQUE_CONSTRAINT,
                    set_={
                        "status": SubjectEnrollmentStatus.ACTIVE.value,
                        "dropped_at": None,
                        "enrolled_at": now,
                        "updated_at": now,
                    },
                )
                .returning(SubjectEnrollment)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

        rows = await run_in_transaction(self.db, _bulk, isolation_level=self._isolation_level)

        logger.info(
            "Bulk subject enrollment: binding=%s, count=%d",
            class_subject_id,
            len(rows),
        )

        return [self._to_response(row) for row in rows]

    async def drop(
        self,
        enrollment_id: str,
        class_subject_id: str,
        scope: TenantScope,
    ) -> SubjectEnrollmentResponse:
        """Drop a subject.

        Raises:
            SubjectEnrollmentNotFoundError: If no matching row is visible.
        """

        async def _drop(session: AsyncSession) -> SubjectEnrollment:
            row = await self._get_for_enrollment(enrollment_id, class_subject_id, scope)
            row.status = SubjectEnrollmentStatus.DROPPED.value
            row.dropped_at = utc_now()
            await session.flush()
            return row

        row = await run_in_transaction(self.db, _drop)

        logger.info(
            "Dropped subject: enrollment=%s, binding=%s",
            enrollment_id,
            class_subject_id,
        )

        return self._to_response(row)

    async def update_status(
        self,
        enrollment_id: str,
        class_subject_id: str,
        status: SubjectEnrollmentStatus,
        scope: TenantScope,
    ) -> SubjectEnrollmentResponse:
        """Set the status of a subject enrollment.

        dropped_at follows the status: stamped on DROPPED, cleared on ACTIVE.

        Raises:
            SubjectEnrollmentNotFoundError: If no matching row is visible.
        """

        async def _update(session: AsyncSession) -> SubjectEnrollment:
            row = await self._get_for_enrollment(enrollment_id, class_subject_id, scope)
            row.status = status.value
            if status == SubjectEnrollmentStatus.DROPPED:
                row.dropped_at = utc_now()
            elif status == SubjectEnrollmentStatus.ACTIVE:
                row.dropped_at = None
            await session.flush()
            return row

        row = await run_in_transaction(self.db, _update)

        logger.info(
            "Subject enrollment status updated: enrollment=%s, binding=%s, status=%s",
            enrollment_id,
            class_subject_id,
            status.value,
        )

        return self._to_response(row)

    async def available_electives(
        self,
        enrollment_id: str,
        class_id: str,
        scope: TenantScope,
    ) -> list[ClassSubjectResponse]:
        """Get non-core bindings the enrollment is not attached to yet.

        Raises:
            EnrollmentNotFoundError: If the enrollment is absent or out of scope.
            BindingClassMismatchError: If the enrollment is in another class.
        """
        enrollment = await self._get_enrollment(enrollment_id, scope)
        if enrollment.class_id != class_id:
            raise BindingClassMismatchError(
                f"Enrollment {enrollment_id} is not in class {class_id}"
            )

        attached = await self._attached_binding_ids(enrollment_id)
        bindings = await self.catalog.bindings(
            class_id,
            scope,
            exclude_categories=[SubjectCategory.CORE],
            stream_id=enrollment.stream_id,
            academic_year_id=enrollment.academic_year_id,
        )

        return [
            ClassSubjectResponse.model_validate(binding)
            for binding in bindings
            if binding.id not in attached
            and binding_applies(binding, enrollment.stream_id, enrollment.academic_year_id)
        ]

    async def list_for_enrollment(
        self,
        enrollment_id: str,
        scope: TenantScope,
        status: SubjectEnrollmentStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SubjectEnrollmentResponse], int]:
        """List subject enrollments of an enrollment with pagination."""
        return await self._list(
            SubjectEnrollment.enrollment_id == enrollment_id, scope, status, limit, offset
        )

    async def list_for_binding(
        self,
        class_subject_id: str,
        scope: TenantScope,
        status: SubjectEnrollmentStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SubjectEnrollmentResponse], int]:
        """List subject enrollments of a class-subject binding with pagination."""
        return await self._list(
            SubjectEnrollment.class_subject_id == class_subject_id, scope, status, limit, offset
        )

    async def list_for_student(
        self,
        student_id: str,
        scope: TenantScope,
        status: SubjectEnrollmentStatus | None = SubjectEnrollmentStatus.ACTIVE,
    ) -> list[SubjectEnrollmentResponse]:
        """List a student's subject enrollments across all enrollments.

        Defaults to ACTIVE rows; pass status=None for every row.
        """
        query = select(SubjectEnrollment).where(
            SubjectEnrollment.student_id == student_id,
            scope.where(SubjectEnrollment.school_id),
        )
        if status:
            query = query.where(SubjectEnrollment.status == status.value)
        query = query.order_by(SubjectEnrollment.enrolled_at.desc())

        result = await self.db.execute(query)
        return [self._to_response(row) for row in result.scalars().all()]

    async def _list(
        self,
        condition,
        scope: TenantScope,
        status: SubjectEnrollmentStatus | None,
        limit: int,
        offset: int,
    ) -> tuple[list[SubjectEnrollmentResponse], int]:
        query = select(SubjectEnrollment).where(condition, scope.where(SubjectEnrollment.school_id))
        if status:
            query = query.where(SubjectEnrollment.status == status.value)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(SubjectEnrollment.enrolled_at).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self._to_response(row) for row in result.scalars().all()], total

    async def _get_enrollment(self, enrollment_id: str, scope: TenantScope) -> Enrollment:
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.id == enrollment_id,
                scope.where(Enrollment.school_id),
            )
        )
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    async def _attached_binding_ids(self, enrollment_id: str) -> set[str]:
        result = await self.db.execute(
            select(SubjectEnrollment.class_subject_id).where(
                SubjectEnrollment.enrollment_id == enrollment_id
            )
        )
        return set(result.scalars().all())

    async def _find(
        self,
        student_id: str,
        class_subject_id: str,
        enrollment_id: str,
    ) -> SubjectEnrollment | None:
        result = await self.db.execute(
            select(SubjectEnrollment).where(
                SubjectEnrollment.student_id == student_id,
                SubjectEnrollment.class_subject_id == class_subject_id,
                SubjectEnrollment.enrollment_id == enrollment_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_for_enrollment(
        self,
        enrollment_id: str,
        class_subject_id: str,
        scope: TenantScope,
    ) -> SubjectEnrollment:
        result = await self.db.execute(
            select(SubjectEnrollment).where(
                SubjectEnrollment.enrollment_id == enrollment_id,
                SubjectEnrollment.class_subject_id == class_subject_id,
                scope.where(SubjectEnrollment.school_id),
            )
        )
        row = result.scalar_one_or_none()
        if not row:
            raise SubjectEnrollmentNotFoundError("Subject enrollment not found")
        return row

    @staticmethod
    def _check_binding(binding: ClassSubject, enrollment: Enrollment) -> None:
        if binding.school_id != enrollment.school_id:
            raise CrossTenantBindingError("Subject belongs to a different school")
        if binding.class_id != enrollment.class_id:
            raise BindingClassMismatchError(
                f"Subject {binding.id} is not offered in the enrollment's class"
            )
        if not binding_applies(binding, enrollment.stream_id, enrollment.academic_year_id):
            raise BindingClassMismatchError(
                f"Subject {binding.id} is not offered to the enrollment's stream or academic year"
            )

    @staticmethod
    def _to_response(row: SubjectEnrollment) -> SubjectEnrollmentResponse:
        return SubjectEnrollmentResponse.model_validate(row)
