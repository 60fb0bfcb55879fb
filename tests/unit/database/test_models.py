# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests model definitions, constraints, and helper properties.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import UniqueConstraint

from src.infrastructure.database.models import (
    Base,
    ClassSubject,
    Enrollment,
    EnrollmentStatus,
    School,
    Sequence,
    SoftDeleteMixin,
    Student,
    SubjectEnrollment,
    TimestampMixin,
    new_id,
)


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_created_at(self):
        """Verify TimestampMixin has created_at field."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_soft_delete_mixin_has_deleted_at(self):
        """Verify SoftDeleteMixin has deleted_at field."""
        assert hasattr(SoftDeleteMixin, "deleted_at")

    def test_new_id_is_unique_uuid_string(self):
        """Primary keys are 36 character UUID strings."""
        first, second = new_id(), new_id()
        assert len(first) == 36
        assert first != second

    def test_all_tables_registered(self):
        """Every records table is in the shared metadata."""
        expected = {
            "schools",
            "students",
            "teachers",
            "academic_years",
            "terms",
            "classes",
            "streams",
            "subjects",
            "class_subjects",
            "enrollments",
            "subject_enrollments",
            "sequences",
        }
        assert expected <= set(Base.metadata.tables)


class TestSchoolModels:
    """Test school structure models."""

    def test_school_model_exists(self):
        """Verify School model has required attributes."""
        assert School.__tablename__ == "schools"
        assert hasattr(School, "is_active")

    def test_student_full_name(self):
        """Test Student.full_name property."""
        student = Student(first_name="Amina", last_name="Okafor", admission_number="STU/2025/0001")
        assert student.full_name == "Amina Okafor"

    def test_student_is_deleted(self):
        """Test SoftDeleteMixin.is_deleted on Student."""
        student = Student(first_name="Amina", last_name="Okafor", admission_number="STU/2025/0001")
        assert student.is_deleted is False

        student.deleted_at = datetime.now(timezone.utc)
        assert student.is_deleted is True

    def test_admission_number_is_unique(self):
        """Admission numbers are unique across all schools."""
        assert Student.__table__.c.admission_number.unique is True

    def test_class_subject_optional_scope_columns(self):
        """stream, year and term narrow a binding only when set."""
        columns = ClassSubject.__table__.c
        assert columns.stream_id.nullable is True
        assert columns.academic_year_id.nullable is True
        assert columns.term_id.nullable is True
        assert columns.class_id.nullable is False


class TestEnrollmentModels:
    """Test enrollment models."""

    @pytest.mark.parametrize(
        "status, expected",
        [
            (EnrollmentStatus.ACTIVE, True),
            (EnrollmentStatus.PROMOTED, False),
            (EnrollmentStatus.TRANSFERRED, False),
        ],
    )
    def test_enrollment_is_active(self, status, expected):
        """Test Enrollment.is_active property."""
        enrollment = Enrollment(status=status.value)
        assert enrollment.is_active is expected

    def test_enrollment_status_values(self):
        """Statuses are stored as upper case strings."""
        assert [s.value for s in EnrollmentStatus] == ["ACTIVE", "PROMOTED", "TRANSFERRED"]

    def test_subject_enrollment_unique_triple(self):
        """A student holds one row per binding and enrollment."""
        constraints = [
            c for c in SubjectEnrollment.__table__.constraints if isinstance(c, UniqueConstraint)
        ]
        names = {c.name: [col.name for col in c.columns] for c in constraints}

        assert names["uq_subject_enrollments_student_binding_enrollment"] == [
            "student_id",
            "class_subject_id",
            "enrollment_id",
        ]

    def test_enrollment_tenant_column(self):
        """Enrollments carry their school."""
        assert Enrollment.__table__.c.school_id.nullable is False


class TestSequenceModel:
    """Test sequence counter model."""

    def test_sequence_key_is_unique(self):
        """One counter row per composite key."""
        assert Sequence.__tablename__ == "sequences"
        assert Sequence.__table__.c.key.unique is True

    def test_sequence_school_is_optional(self):
        """Global counters have no school."""
        assert Sequence.__table__.c.school_id.nullable is True
        assert Sequence.__table__.c.year.nullable is True
