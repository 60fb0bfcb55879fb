# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for managing student placements.

This module provides the EnrollmentService class for:
- Enrolling a student in a class, stream and academic year
- Promotion to another class
- Transfer to another school
- Administrative status correction
- Enrollment lookups and history

Status graph:

    ACTIVE -> PROMOTED      (forward pointer to the new class)
    ACTIVE -> TRANSFERRED   (reason and date recorded)

PROMOTED and TRANSFERRED are terminal; the destination always gets a new
enrollment row.

Enrolling is two transactions. The first creates the enrollment and must
succeed. The second attaches the class's core subjects and any requested
electives; its failure is logged and reported on the result while the
enrollment stays committed.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.errors import ConflictError, NotFoundError, RecordsError, ValidationError
from src.domains.catalog.service import CatalogService
from src.domains.subject_enrollment.service import SubjectEnrollmentService
from src.domains.tenancy.scope import TenantScope
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.enrollment import Enrollment, EnrollmentStatus
from src.infrastructure.database.transactions import run_in_transaction
from src.models.enrollment import EnrollmentResponse, EnrollmentResult, TransferResult
from src.models.subject_enrollment import SubjectEnrollmentResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.ACTIVE: frozenset({EnrollmentStatus.PROMOTED, EnrollmentStatus.TRANSFERRED}),
    EnrollmentStatus.PROMOTED: frozenset(),
    EnrollmentStatus.TRANSFERRED: frozenset(),
}


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class EnrollmentNotFoundError(EnrollmentServiceError, NotFoundError):
    """Raised when enrollment is not found."""

    pass


class NotEnrolledError(EnrollmentServiceError, NotFoundError):
    """Raised when student has no active enrollment in the class."""

    pass


class AlreadyEnrolledError(EnrollmentServiceError, ConflictError):
    """Raised when student already has an active enrollment for the year."""

    pass


class SchoolMismatchError(EnrollmentServiceError, ValidationError):
    """Raised when student, class and year belong to different schools."""

    pass


class InvalidPromotionError(EnrollmentServiceError, ValidationError):
    """Raised when promoting into the current class."""

    pass


class SameSchoolTransferError(EnrollmentServiceError, ValidationError):
    """Raised when transferring to the student's current school."""

    pass


class InvalidTransitionError(EnrollmentServiceError, ValidationError):
    """Raised when a status change is not allowed by the status graph."""

    pass


def is_allowed_transition(current: EnrollmentStatus, new: EnrollmentStatus) -> bool:
    """Check a status change against the status graph.

    Setting the current status again is always allowed.
    """
    return current == new or new in ALLOWED_TRANSITIONS[current]


class EnrollmentService:
    """Service for the enrollment lifecycle.

    Attributes:
        db: Async database session.
        catalog: Catalog lookups sharing the same session.
        subjects: Subject enrollment service sharing the same session.
    """

    def __init__(
        self,
        db: AsyncSession,
        catalog: CatalogService | None = None,
        subjects: SubjectEnrollmentService | None = None,
    ) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            catalog: Catalog service; one is created on db when omitted.
            subjects: Subject enrollment service; one is created when omitted.
        """
        self.db = db
        self.catalog = catalog or CatalogService(db)
        self.subjects = subjects or SubjectEnrollmentService(db, self.catalog)
        self._isolation_level = get_settings().database.isolation_level

    async def enroll(
        self,
        student_id: str,
        class_id: str,
        academic_year_id: str,
        scope: TenantScope,
        stream_id: str | None = None,
        elective_class_subject_ids: list[str] | None = None,
    ) -> EnrollmentResult:
        """Enroll a student in a class for an academic year.

        Args:
            student_id: Student identifier.
            class_id: Class identifier.
            academic_year_id: Academic year identifier.
            scope: Caller's tenant scope.
            stream_id: Optional stream of the class.
            elective_class_subject_ids: Electives to attach after core subjects.

        Returns:
            The new enrollment with attached subjects. subjects_complete is
            False when subject attachment partly failed.

        Raises:
            StudentNotFoundError: If student not found.
            ClassNotFoundError: If class not found.
            AcademicYearNotFoundError: If academic year not found.
            StreamNotFoundError: If stream not found.
            StreamClassMismatchError: If stream is not in the class.
            SchoolMismatchError: If the records belong to different schools.
            AlreadyEnrolledError: If the student is already active that year.
        """

        async def _create(session: AsyncSession) -> Enrollment:
            student = await self.catalog.get_student(student_id, scope)
            class_ = await self.catalog.get_class(class_id, scope)
            year = await self.catalog.get_academic_year(academic_year_id, scope)
            if stream_id:
                await self.catalog.get_stream(stream_id, class_id, scope)

            if not (student.school_id == class_.school_id == year.school_id):
                raise SchoolMismatchError(
                    "Student, class and academic year must belong to the same school"
                )
            scope.require_write(class_.school_id)

            await self._ensure_not_active(student_id, academic_year_id)

            enrollment = Enrollment(
                id=new_id(),
                school_id=class_.school_id,
                student_id=student_id,
                class_id=class_id,
                stream_id=stream_id,
                academic_year_id=academic_year_id,
                status=EnrollmentStatus.ACTIVE.value,
                enrolled_at=utc_now(),
            )
            session.add(enrollment)
            await session.flush()
            return enrollment

        enrollment = await run_in_transaction(
            self.db, _create, isolation_level=self._isolation_level
        )
        response = self._to_response(enrollment)

        logger.info(
            "Enrollment created: enrollment=%s, student=%s, class=%s, year=%s",
            response.id,
            student_id,
            class_id,
            academic_year_id,
        )

        return await self._attach_subjects(response, scope, elective_class_subject_ids)

    async def promote(
        self,
        student_id: str,
        current_class_id: str,
        new_class_id: str,
        academic_year_id: str,
        scope: TenantScope,
        stream_id: str | None = None,
        elective_class_subject_ids: list[str] | None = None,
    ) -> EnrollmentResult:
        """Promote a student from one class to another.

        Every ACTIVE enrollment of the student in current_class_id is marked
        PROMOTED and a new ACTIVE enrollment is created, in one transaction.
        Subjects are attached afterwards on a best-effort basis.

        Args:
            student_id: Student identifier.
            current_class_id: Class the student is leaving.
            new_class_id: Class the student is promoted into.
            academic_year_id: Academic year of the new enrollment.
            scope: Caller's tenant scope.
            stream_id: Optional stream of the new class.
            elective_class_subject_ids: Electives to attach in the new class.

        Returns:
            The new enrollment with attached subjects.

        Raises:
            InvalidPromotionError: If both classes are the same.
            NotEnrolledError: If there is no ACTIVE enrollment to promote.
            AlreadyEnrolledError: If the student is already active elsewhere
                in the target year.
        """
        if current_class_id == new_class_id:
            raise InvalidPromotionError("Student cannot be promoted into the same class")

        async def _promote(session: AsyncSession) -> Enrollment:
            student = await self.catalog.get_student(student_id, scope)
            new_class = await self.catalog.get_class(new_class_id, scope)
            year = await self.catalog.get_academic_year(academic_year_id, scope)
            if stream_id:
                await self.catalog.get_stream(stream_id, new_class_id, scope)

            if not (student.school_id == new_class.school_id == year.school_id):
                raise SchoolMismatchError(
                    "Student, class and academic year must belong to the same school"
                )
            scope.require_write(new_class.school_id)

            await self._ensure_not_active(
                student_id, academic_year_id, exclude_class_id=current_class_id
            )

            now = utc_now()
            result = await session.execute(
                update(Enrollment)
                .where(
                    Enrollment.student_id == student_id,
                    Enrollment.class_id == current_class_id,
                    Enrollment.status == EnrollmentStatus.ACTIVE.value,
                    scope.where(Enrollment.school_id),
                )
                .values(
                    status=EnrollmentStatus.PROMOTED.value,
                    promoted_to_id=new_class_id,
                    promotion_date=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotEnrolledError(
                    f"Student {student_id} has no active enrollment in class {current_class_id}"
                )
            if result.rowcount > 1:
                logger.warning(
                    "Promotion closed %d active enrollments: student=%s, class=%s",
                    result.rowcount,
                    student_id,
                    current_class_id,
                )

            enrollment = Enrollment(
                id=new_id(),
                school_id=new_class.school_id,
                student_id=student_id,
                class_id=new_class_id,
                stream_id=stream_id,
                academic_year_id=academic_year_id,
                status=EnrollmentStatus.ACTIVE.value,
                enrolled_at=now,
            )
            session.add(enrollment)
            await session.flush()
            return enrollment

        enrollment = await run_in_transaction(
            self.db, _promote, isolation_level=self._isolation_level
        )
        response = self._to_response(enrollment)

        logger.info(
            "Student promoted: student=%s, from_class=%s, to_class=%s, enrollment=%s",
            student_id,
            current_class_id,
            new_class_id,
            response.id,
        )

        return await self._attach_subjects(response, scope, elective_class_subject_ids)

    async def transfer(
        self,
        student_id: str,
        new_school_id: str,
        reason: str,
        transfer_date: date,
        scope: TenantScope,
    ) -> TransferResult:
        """Transfer a student to another school.

        The student record moves to the new school and all of the student's
        ACTIVE enrollments become TRANSFERRED, in one transaction.

        Args:
            student_id: Student identifier.
            new_school_id: Destination school.
            reason: Transfer reason recorded on the closed enrollments.
            transfer_date: Effective date of the transfer.
            scope: Caller's tenant scope.

        Returns:
            Transfer summary.

        Raises:
            StudentNotFoundError: If student not found.
            SameSchoolTransferError: If the destination is the current school.
            SchoolNotFoundError: If the destination is absent or inactive.
        """

        async def _transfer(session: AsyncSession) -> TransferResult:
            student = await self.catalog.get_student(student_id, scope)
            scope.require_write(student.school_id)
            if student.school_id == new_school_id:
                raise SameSchoolTransferError("Student is already in this school")
            await self.catalog.get_active_school(new_school_id)

            result = await session.execute(
                update(Enrollment)
                .where(
                    Enrollment.student_id == student_id,
                    Enrollment.status == EnrollmentStatus.ACTIVE.value,
                )
                .values(
                    status=EnrollmentStatus.TRANSFERRED.value,
                    transfer_reason=reason,
                    transfer_date=transfer_date,
                )
                .execution_options(synchronize_session=False)
            )

            from_school_id = student.school_id
            student.school_id = new_school_id
            await session.flush()

            return TransferResult(
                student_id=student_id,
                from_school_id=from_school_id,
                to_school_id=new_school_id,
                transferred_enrollments=result.rowcount,
            )

        transfer = await run_in_transaction(
            self.db, _transfer, isolation_level=self._isolation_level
        )

        logger.info(
            "Student transferred: student=%s, from_school=%s, to_school=%s, enrollments=%d",
            student_id,
            transfer.from_school_id,
            new_school_id,
            transfer.transferred_enrollments,
        )

        return transfer

    async def update_status(
        self,
        enrollment_id: str,
        status: EnrollmentStatus,
        scope: TenantScope,
        force: bool = False,
    ) -> EnrollmentResponse:
        """Overwrite the status of an enrollment.

        Transitions are checked against the status graph unless force is
        set. Forced overwrites are logged at WARNING. Reactivating still
        refuses a second ACTIVE enrollment in the same year.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            InvalidTransitionError: If the transition is not allowed.
            AlreadyEnrolledError: If reactivation would duplicate an ACTIVE row.
        """

        async def _update(session: AsyncSession) -> Enrollment:
            enrollment = await self._get(enrollment_id, scope)
            current = EnrollmentStatus(enrollment.status)

            if not force and not is_allowed_transition(current, status):
                raise InvalidTransitionError(
                    f"Cannot change enrollment status from {current.value} to {status.value}"
                )
            if status == EnrollmentStatus.ACTIVE and current != EnrollmentStatus.ACTIVE:
                await self._ensure_not_active(enrollment.student_id, enrollment.academic_year_id)

            enrollment.status = status.value
            await session.flush()

            if force:
                logger.warning(
                    "Enrollment status overwritten: enrollment=%s, from=%s, to=%s",
                    enrollment_id,
                    current.value,
                    status.value,
                )
            return enrollment

        enrollment = await run_in_transaction(
            self.db, _update, isolation_level=self._isolation_level
        )

        logger.info("Enrollment status updated: enrollment=%s, status=%s", enrollment_id, status.value)

        return self._to_response(enrollment)

    async def get_enrollment(self, enrollment_id: str, scope: TenantScope) -> EnrollmentResponse:
        """Get an enrollment visible to the scope.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
        """
        return self._to_response(await self._get(enrollment_id, scope))

    async def list_enrollments(
        self,
        scope: TenantScope,
        student_id: str | None = None,
        class_id: str | None = None,
        academic_year_id: str | None = None,
        status: EnrollmentStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[EnrollmentResponse], int]:
        """List enrollments with filtering and pagination.

        Args:
            scope: Caller's tenant scope.
            student_id: Filter by student.
            class_id: Filter by class.
            academic_year_id: Filter by academic year.
            status: Filter by status.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of enrollments, total count).
        """
        query = select(Enrollment).where(scope.where(Enrollment.school_id))

        if student_id:
            query = query.where(Enrollment.student_id == student_id)
        if class_id:
            query = query.where(Enrollment.class_id == class_id)
        if academic_year_id:
            query = query.where(Enrollment.academic_year_id == academic_year_id)
        if status:
            query = query.where(Enrollment.status == status.value)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Enrollment.enrolled_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)
        items = [self._to_response(e) for e in result.scalars().all()]

        return items, total

    async def history(self, student_id: str, scope: TenantScope) -> list[EnrollmentResponse]:
        """Get a student's enrollments, newest first."""
        result = await self.db.execute(
            select(Enrollment)
            .where(
                Enrollment.student_id == student_id,
                scope.where(Enrollment.school_id),
            )
            .order_by(Enrollment.enrolled_at.desc())
        )
        return [self._to_response(e) for e in result.scalars().all()]

    async def _attach_subjects(
        self,
        enrollment: EnrollmentResponse,
        scope: TenantScope,
        elective_class_subject_ids: list[str] | None,
    ) -> EnrollmentResult:
        """Attach core subjects and electives without failing the caller."""
        attached: list[SubjectEnrollmentResponse] = []
        warnings: list[str] = []

        try:
            attached.extend(
                await self.subjects.auto_enroll_core(
                    enrollment.id,
                    enrollment.class_id,
                    scope,
                    enrollment.student_id,
                    stream_id=enrollment.stream_id,
                    academic_year_id=enrollment.academic_year_id,
                )
            )
        except Exception:
            logger.exception(
                "Core subject enrollment failed, enrollment kept: enrollment=%s, class=%s",
                enrollment.id,
                enrollment.class_id,
            )
            warnings.append("Core subjects could not be attached")

        for class_subject_id in elective_class_subject_ids or []:
            try:
                attached.append(
                    await self.subjects.enroll_in_subject(
                        enrollment.student_id, class_subject_id, enrollment.id, scope
                    )
                )
            except Exception as e:
                logger.warning(
                    "Elective enrollment failed: enrollment=%s, class_subject=%s, error=%s",
                    enrollment.id,
                    class_subject_id,
                    e,
                )
                detail = e.message if isinstance(e, RecordsError) else "internal error"
                warnings.append(f"Elective {class_subject_id} could not be attached: {detail}")

        return EnrollmentResult(
            enrollment=enrollment,
            subject_enrollments=attached,
            subjects_complete=not warnings,
            warnings=warnings,
        )

    async def _ensure_not_active(
        self,
        student_id: str,
        academic_year_id: str,
        exclude_class_id: str | None = None,
    ) -> None:
        query = select(Enrollment.id).where(
            Enrollment.student_id == student_id,
            Enrollment.academic_year_id == academic_year_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        if exclude_class_id:
            query = query.where(Enrollment.class_id != exclude_class_id)

        result = await self.db.execute(query.limit(1))
        if result.scalar_one_or_none():
            raise AlreadyEnrolledError(
                "Student already has an active enrollment for this academic year"
            )

    async def _get(self, enrollment_id: str, scope: TenantScope) -> Enrollment:
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

    @staticmethod
    def _to_response(enrollment: Enrollment) -> EnrollmentResponse:
        return EnrollmentResponse.model_validate(enrollment)
