# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Subject Enrollment service."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.core.errors import AccessDeniedError, ConflictError, NotFoundError
from src.domains.catalog import ClassSubjectNotFoundError
from src.domains.subject_enrollment import (
    AlreadyEnrolledInSubjectError,
    BindingClassMismatchError,
    CrossTenantBindingError,
    EnrollmentNotFoundError,
    StudentMismatchError,
    SubjectEnrollmentNotFoundError,
    SubjectEnrollmentService,
)
from src.domains.tenancy import TenantScope
from src.infrastructure.database.models import (
    ClassSubject,
    Enrollment,
    EnrollmentStatus,
    SubjectCategory,
    SubjectEnrollment,
    SubjectEnrollmentStatus,
)

CLASS_ID = "c1a55000-0000-0000-0000-000000000001"
OTHER_CLASS_ID = "c1a55000-0000-0000-0000-000000000002"


def _scope(tenant_id: str) -> TenantScope:
    return TenantScope.for_tenant(tenant_id)


@pytest.fixture
def subject_service(mock_db):
    """Create subject enrollment service with mock database."""
    return SubjectEnrollmentService(db=mock_db)


@pytest.fixture
def enrollment(sample_tenant_id, sample_student_id):
    """An ACTIVE enrollment in CLASS_ID."""
    return Enrollment(
        id=str(uuid4()),
        school_id=sample_tenant_id,
        student_id=sample_student_id,
        class_id=CLASS_ID,
        stream_id=None,
        academic_year_id=str(uuid4()),
        status=EnrollmentStatus.ACTIVE.value,
        enrolled_at=datetime.now(timezone.utc),
    )


def make_binding(
    school_id: str,
    category: SubjectCategory,
    class_id: str = CLASS_ID,
    stream_id: str | None = None,
    academic_year_id: str | None = None,
) -> ClassSubject:
    """Build a class-subject binding."""
    return ClassSubject(
        id=str(uuid4()),
        school_id=school_id,
        class_id=class_id,
        stream_id=stream_id,
        academic_year_id=academic_year_id,
        subject_id=str(uuid4()),
        category=category.value,
    )


def make_row(enrollment: Enrollment, binding: ClassSubject, status: SubjectEnrollmentStatus) -> SubjectEnrollment:
    """Build a subject enrollment for enrollment and binding."""
    return SubjectEnrollment(
        id=str(uuid4()),
        school_id=enrollment.school_id,
        student_id=enrollment.student_id,
        enrollment_id=enrollment.id,
        class_subject_id=binding.id,
        status=status.value,
        enrolled_at=datetime.now(timezone.utc),
        dropped_at=datetime.now(timezone.utc) if status == SubjectEnrollmentStatus.DROPPED else None,
    )


class TestAutoEnrollCore:
    """Tests for auto_enroll_core."""

    @pytest.mark.asyncio
    async def test_creates_one_row_per_core_binding(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """Three core bindings yield three ACTIVE subject enrollments."""
        core = [make_binding(sample_tenant_id, SubjectCategory.CORE) for _ in range(3)]
        mock_db.execute.side_effect = [make_result(scalars=core), make_result(scalars=[])]

        created = await subject_service.auto_enroll_core(
            enrollment.id, CLASS_ID, _scope(sample_tenant_id), enrollment.student_id
        )

        assert len(created) == 3
        assert all(row.status == SubjectEnrollmentStatus.ACTIVE for row in created)
        assert {row.class_subject_id for row in created} == {b.id for b in core}
        assert mock_db.add.call_count == 3
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_already_attached_bindings(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """Re-running auto enrollment does not duplicate rows."""
        core = [make_binding(sample_tenant_id, SubjectCategory.CORE) for _ in range(2)]
        mock_db.execute.side_effect = [
            make_result(scalars=core),
            make_result(scalars=[core[0].id]),
        ]

        created = await subject_service.auto_enroll_core(
            enrollment.id, CLASS_ID, _scope(sample_tenant_id), enrollment.student_id
        )

        assert [row.class_subject_id for row in created] == [core[1].id]

    @pytest.mark.asyncio
    async def test_skips_bindings_of_other_stream(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A student without a stream only gets cores shared by all streams."""
        shared = make_binding(sample_tenant_id, SubjectCategory.CORE)
        streamed = make_binding(sample_tenant_id, SubjectCategory.CORE, stream_id=str(uuid4()))
        mock_db.execute.side_effect = [
            make_result(scalars=[shared, streamed]),
            make_result(scalars=[]),
        ]

        created = await subject_service.auto_enroll_core(
            enrollment.id,
            CLASS_ID,
            _scope(sample_tenant_id),
            enrollment.student_id,
            academic_year_id=enrollment.academic_year_id,
        )

        assert [row.class_subject_id for row in created] == [shared.id]

    @pytest.mark.asyncio
    async def test_failure_rolls_back_whole_batch(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """The auto batch is all-or-nothing."""
        core = [make_binding(sample_tenant_id, SubjectCategory.CORE)]
        mock_db.execute.side_effect = [make_result(scalars=core), make_result(scalars=[])]
        mock_db.flush.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            await subject_service.auto_enroll_core(
                enrollment.id, CLASS_ID, _scope(sample_tenant_id), enrollment.student_id
            )

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()


class TestEnrollInSubject:
    """Tests for enroll_in_subject."""

    @pytest.mark.asyncio
    async def test_creates_new_row(self, subject_service, mock_db, make_result, enrollment, sample_tenant_id):
        """A fresh binding creates an ACTIVE row."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=binding),
            make_result(scalar=None),
        ]

        result = await subject_service.enroll_in_subject(
            enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
        )

        assert result.status == SubjectEnrollmentStatus.ACTIVE
        assert result.class_subject_id == binding.id
        mock_db.add.assert_called_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_drop_then_reenroll_reuses_row(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A dropped row is reactivated, not duplicated."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        dropped = make_row(enrollment, binding, SubjectEnrollmentStatus.DROPPED)
        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=binding),
            make_result(scalar=dropped),
        ]

        result = await subject_service.enroll_in_subject(
            enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
        )

        assert result.id == dropped.id
        assert result.status == SubjectEnrollmentStatus.ACTIVE
        assert result.dropped_at is None
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [SubjectEnrollmentStatus.ACTIVE, SubjectEnrollmentStatus.COMPLETED, SubjectEnrollmentStatus.FAILED],
    )
    async def test_existing_row_conflicts(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id, status
    ):
        """Any non-dropped row for the same triple is a conflict."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=binding),
            make_result(scalar=make_row(enrollment, binding, status)),
        ]

        with pytest.raises(AlreadyEnrolledInSubjectError) as exc_info:
            await subject_service.enroll_in_subject(
                enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
            )

        assert isinstance(exc_info.value, ConflictError)

    @pytest.mark.asyncio
    async def test_enrollment_not_found(self, subject_service, mock_db, make_result, sample_tenant_id):
        """Unknown or out-of-scope enrollments raise NotFound."""
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(EnrollmentNotFoundError):
            await subject_service.enroll_in_subject(
                str(uuid4()), str(uuid4()), str(uuid4()), _scope(sample_tenant_id)
            )

    @pytest.mark.asyncio
    async def test_binding_not_found(self, subject_service, mock_db, make_result, enrollment, sample_tenant_id):
        """Unknown bindings raise NotFound."""
        mock_db.execute.side_effect = [make_result(scalar=enrollment), make_result(scalar=None)]

        with pytest.raises(ClassSubjectNotFoundError):
            await subject_service.enroll_in_subject(
                enrollment.student_id, str(uuid4()), enrollment.id, _scope(sample_tenant_id)
            )

    @pytest.mark.asyncio
    async def test_student_mismatch(self, subject_service, mock_db, make_result, enrollment, sample_tenant_id):
        """The enrollment must belong to the named student."""
        mock_db.execute.return_value = make_result(scalar=enrollment)

        with pytest.raises(StudentMismatchError):
            await subject_service.enroll_in_subject(
                str(uuid4()), str(uuid4()), enrollment.id, _scope(sample_tenant_id)
            )

    @pytest.mark.asyncio
    async def test_binding_from_other_class(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A binding of another class is rejected."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE, class_id=OTHER_CLASS_ID)
        mock_db.execute.side_effect = [make_result(scalar=enrollment), make_result(scalar=binding)]

        with pytest.raises(BindingClassMismatchError):
            await subject_service.enroll_in_subject(
                enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
            )

    @pytest.mark.asyncio
    async def test_binding_from_other_school(
        self, subject_service, mock_db, make_result, enrollment, other_tenant_id, superuser_scope
    ):
        """Even a superuser cannot bind a subject of another school."""
        binding = make_binding(other_tenant_id, SubjectCategory.ELECTIVE)
        mock_db.execute.side_effect = [make_result(scalar=enrollment), make_result(scalar=binding)]

        with pytest.raises(CrossTenantBindingError) as exc_info:
            await subject_service.enroll_in_subject(
                enrollment.student_id, binding.id, enrollment.id, superuser_scope
            )

        assert isinstance(exc_info.value, AccessDeniedError)

    @pytest.mark.asyncio
    async def test_binding_from_other_academic_year(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A binding offered in another academic year is rejected."""
        binding = make_binding(
            sample_tenant_id, SubjectCategory.ELECTIVE, academic_year_id=str(uuid4())
        )
        mock_db.execute.side_effect = [make_result(scalar=enrollment), make_result(scalar=binding)]

        with pytest.raises(BindingClassMismatchError):
            await subject_service.enroll_in_subject(
                enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
            )

        mock_db.add.assert_not_called()
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_binding_from_other_stream(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A stream-specific binding is only open to that stream."""
        enrollment.stream_id = str(uuid4())
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE, stream_id=str(uuid4()))
        mock_db.execute.side_effect = [make_result(scalar=enrollment), make_result(scalar=binding)]

        with pytest.raises(BindingClassMismatchError):
            await subject_service.enroll_in_subject(
                enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
            )

    @pytest.mark.asyncio
    async def test_binding_for_enrollment_year_and_stream(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A binding narrowed to the enrollment's own year and stream is accepted."""
        enrollment.stream_id = str(uuid4())
        binding = make_binding(
            sample_tenant_id,
            SubjectCategory.ELECTIVE,
            stream_id=enrollment.stream_id,
            academic_year_id=enrollment.academic_year_id,
        )
        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=binding),
            make_result(scalar=None),
        ]

        result = await subject_service.enroll_in_subject(
            enrollment.student_id, binding.id, enrollment.id, _scope(sample_tenant_id)
        )

        assert result.status == SubjectEnrollmentStatus.ACTIVE


class TestBulkEnroll:
    """Tests for bulk_enroll."""

    @pytest.mark.asyncio
    async def test_upserts_in_one_statement(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """All enrollments are upserted with ON CONFLICT on the natural key."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        row = make_row(enrollment, binding, SubjectEnrollmentStatus.ACTIVE)
        mock_db.execute.side_effect = [
            make_result(scalar=binding),
            make_result(scalars=[enrollment]),
            make_result(scalars=[row]),
        ]

        result = await subject_service.bulk_enroll(
            [enrollment.id, enrollment.id], binding.id, _scope(sample_tenant_id)
        )

        assert [r.id for r in result] == [row.id]
        upsert = mock_db.execute.await_args_list[2].args[0]
        sql = str(upsert.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT ON CONSTRAINT uq_subject_enrollments_student_binding_enrollment" in sql
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reactivation_refreshes_enrolled_at(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A reactivated row gets a new enrolled_at, as with a single enrollment."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        row = make_row(enrollment, binding, SubjectEnrollmentStatus.ACTIVE)
        mock_db.execute.side_effect = [
            make_result(scalar=binding),
            make_result(scalars=[enrollment]),
            make_result(scalars=[row]),
        ]

        await subject_service.bulk_enroll([enrollment.id], binding.id, _scope(sample_tenant_id))

        upsert = mock_db.execute.await_args_list[2].args[0]
        sql = str(upsert.compile(dialect=postgresql.dialect()))
        update_clause = sql.split("DO UPDATE SET", 1)[1]
        assert "enrolled_at" in update_clause
        assert "dropped_at" in update_clause

    @pytest.mark.asyncio
    async def test_enrollment_from_other_academic_year_rejected(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A year-specific binding cannot be bulk-assigned to another year's enrollments."""
        binding = make_binding(
            sample_tenant_id, SubjectCategory.ELECTIVE, academic_year_id=str(uuid4())
        )
        mock_db.execute.side_effect = [
            make_result(scalar=binding),
            make_result(scalars=[enrollment]),
        ]

        with pytest.raises(BindingClassMismatchError):
            await subject_service.bulk_enroll([enrollment.id], binding.id, _scope(sample_tenant_id))

        assert mock_db.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_enrollment_fails_whole_set(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """One unknown enrollment aborts the bulk transaction."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        mock_db.execute.side_effect = [
            make_result(scalar=binding),
            make_result(scalars=[enrollment]),
        ]

        with pytest.raises(EnrollmentNotFoundError):
            await subject_service.bulk_enroll(
                [enrollment.id, str(uuid4())], binding.id, _scope(sample_tenant_id)
            )

        mock_db.rollback.assert_awaited_once()
        assert mock_db.execute.await_count == 2


class TestDropAndStatus:
    """Tests for drop and update_status."""

    @pytest.mark.asyncio
    async def test_drop_stamps_dropped_at(self, subject_service, mock_db, make_result, enrollment, sample_tenant_id):
        """Dropping sets DROPPED and dropped_at."""
        binding = make_binding(sample_tenant_id, SubjectCategory.ELECTIVE)
        row = make_row(enrollment, binding, SubjectEnrollmentStatus.ACTIVE)
        mock_db.execute.return_value = make_result(scalar=row)

        result = await subject_service.drop(enrollment.id, binding.id, _scope(sample_tenant_id))

        assert result.status == SubjectEnrollmentStatus.DROPPED
        assert result.dropped_at is not None

    @pytest.mark.asyncio
    async def test_drop_missing_row(self, subject_service, mock_db, make_result, sample_tenant_id):
        """Dropping a subject that was never taken fails."""
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(SubjectEnrollmentNotFoundError) as exc_info:
            await subject_service.drop(str(uuid4()), str(uuid4()), _scope(sample_tenant_id))

        assert isinstance(exc_info.value, NotFoundError)

    @pytest.mark.asyncio
    async def test_update_status_completed(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """A subject can be marked COMPLETED."""
        binding = make_binding(sample_tenant_id, SubjectCategory.CORE)
        row = make_row(enrollment, binding, SubjectEnrollmentStatus.ACTIVE)
        mock_db.execute.return_value = make_result(scalar=row)

        result = await subject_service.update_status(
            enrollment.id, binding.id, SubjectEnrollmentStatus.COMPLETED, _scope(sample_tenant_id)
        )

        assert result.status == SubjectEnrollmentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_update_status_active_clears_dropped_at(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """Reactivating through update_status clears dropped_at."""
        binding = make_binding(sample_tenant_id, SubjectCategory.CORE)
        row = make_row(enrollment, binding, SubjectEnrollmentStatus.DROPPED)
        mock_db.execute.return_value = make_result(scalar=row)

        result = await subject_service.update_status(
            enrollment.id, binding.id, SubjectEnrollmentStatus.ACTIVE, _scope(sample_tenant_id)
        )

        assert result.dropped_at is None


class TestAvailableElectives:
    """Tests for available_electives."""

    @pytest.mark.asyncio
    async def test_returns_unattached_non_core(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """Electives already attached are excluded."""
        electives = [make_binding(sample_tenant_id, SubjectCategory.ELECTIVE) for _ in range(3)]
        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalars=[electives[0].id]),
            make_result(scalars=electives),
        ]

        result = await subject_service.available_electives(
            enrollment.id, CLASS_ID, _scope(sample_tenant_id)
        )

        assert [b.id for b in result] == [electives[1].id, electives[2].id]
        assert all(b.category != SubjectCategory.CORE for b in result)

    @pytest.mark.asyncio
    async def test_narrowed_to_enrollment_year(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """Electives of another academic year are neither queried for nor offered."""
        this_year = make_binding(
            sample_tenant_id, SubjectCategory.ELECTIVE, academic_year_id=enrollment.academic_year_id
        )
        any_year = make_binding(sample_tenant_id, SubjectCategory.OPTIONAL)
        other_year = make_binding(
            sample_tenant_id, SubjectCategory.ELECTIVE, academic_year_id=str(uuid4())
        )
        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalars=[]),
            make_result(scalars=[this_year, any_year, other_year]),
        ]

        result = await subject_service.available_electives(
            enrollment.id, CLASS_ID, _scope(sample_tenant_id)
        )

        assert [b.id for b in result] == [this_year.id, any_year.id]
        query = mock_db.execute.await_args_list[2].args[0]
        sql = str(query.compile(dialect=postgresql.dialect()))
        assert "class_subjects.academic_year_id" in sql

    @pytest.mark.asyncio
    async def test_class_must_match_enrollment(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """Asking for another class's electives is rejected."""
        mock_db.execute.return_value = make_result(scalar=enrollment)

        with pytest.raises(BindingClassMismatchError):
            await subject_service.available_electives(
                enrollment.id, OTHER_CLASS_ID, _scope(sample_tenant_id)
            )


class TestEnrollThenElectives:
    """Core auto-enrollment and elective discovery together."""

    @pytest.mark.asyncio
    async def test_three_core_two_electives(
        self, subject_service, mock_db, make_result, enrollment, sample_tenant_id
    ):
        """3 core rows are created and exactly the 2 electives remain available."""
        core = [make_binding(sample_tenant_id, SubjectCategory.CORE) for _ in range(3)]
        electives = [make_binding(sample_tenant_id, SubjectCategory.ELECTIVE) for _ in range(2)]
        scope = _scope(sample_tenant_id)

        mock_db.execute.side_effect = [make_result(scalars=core), make_result(scalars=[])]
        created = await subject_service.auto_enroll_core(
            enrollment.id, CLASS_ID, scope, enrollment.student_id
        )

        mock_db.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalars=[row.class_subject_id for row in created]),
            make_result(scalars=electives),
        ]
        available = await subject_service.available_electives(enrollment.id, CLASS_ID, scope)

        assert len(created) == 3
        assert [b.id for b in available] == [b.id for b in electives]


class TestListing:
    """Tests for paginated listings."""

    @pytest.mark.asyncio
    async def test_list_for_enrollment(self, subject_service, mock_db, make_result, enrollment, sample_tenant_id):
        """Listing returns items and the total count."""
        binding = make_binding(sample_tenant_id, SubjectCategory.CORE)
        row = make_row(enrollment, binding, SubjectEnrollmentStatus.ACTIVE)
        mock_db.execute.side_effect = [make_result(scalar=7), make_result(scalars=[row])]

        items, total = await subject_service.list_for_enrollment(
            enrollment.id, _scope(sample_tenant_id), limit=1, offset=0
        )

        assert total == 7
        assert [i.id for i in items] == [row.id]

    @pytest.mark.asyncio
    async def test_list_for_student_defaults_to_active(
        self, subject_service, mock_db, make_result, sample_student_id, sample_tenant_id
    ):
        """Student listings only include ACTIVE rows by default."""
        mock_db.execute.return_value = make_result(scalars=[])

        await subject_service.list_for_student(sample_student_id, _scope(sample_tenant_id))

        stmt = mock_db.execute.await_args.args[0]
        compiled = stmt.compile(dialect=postgresql.dialect())
        assert "subject_enrollments.status = " in str(compiled)
        assert "ACTIVE" in compiled.params.values()
