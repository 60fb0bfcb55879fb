# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial records database schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-15
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _fk(name: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create records database tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # SCHOOL STRUCTURE TABLES
    # =========================================================================

    op.create_table(
        "schools",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), unique=True, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )

    op.create_table(
        "students",
        _id(),
        _fk("school_id", "schools.id", "RESTRICT"),
        sa.Column("admission_number", sa.String(50), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date, nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_students_school_id", "students", ["school_id"])

    op.create_table(
        "teachers",
        _id(),
        _fk("school_id", "schools.id", "RESTRICT"),
        sa.Column("employee_number", sa.String(50), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_teachers_school_id", "teachers", ["school_id"])

    op.create_table(
        "academic_years",
        _id(),
        _fk("school_id", "schools.id", "CASCADE"),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
    )
    op.create_index("ix_academic_years_school_id", "academic_years", ["school_id"])

    op.create_table(
        "terms",
        _id(),
        _fk("school_id", "schools.id", "CASCADE"),
        _fk("academic_year_id", "academic_years.id", "CASCADE"),
        sa.Column("name", sa.String(50), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "classes",
        _id(),
        _fk("school_id", "schools.id", "CASCADE"),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("level", sa.Integer, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_classes_school_id", "classes", ["school_id"])

    op.create_table(
        "streams",
        _id(),
        _fk("school_id", "schools.id", "CASCADE"),
        _fk("class_id", "classes.id", "CASCADE"),
        sa.Column("name", sa.String(50), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_streams_class_id", "streams", ["class_id"])

    op.create_table(
        "subjects",
        _id(),
        _fk("school_id", "schools.id", "CASCADE"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "class_subjects",
        _id(),
        _fk("school_id", "schools.id", "CASCADE"),
        _fk("class_id", "classes.id", "CASCADE"),
        _fk("stream_id", "streams.id", "CASCADE", nullable=True),
        _fk("subject_id", "subjects.id", "CASCADE"),
        _fk("academic_year_id", "academic_years.id", "CASCADE", nullable=True),
        _fk("term_id", "terms.id", "SET NULL", nullable=True),
        _fk("teacher_id", "teachers.id", "SET NULL", nullable=True),
        sa.Column("category", sa.String(20), nullable=False, server_default="CORE"),
        *_timestamps(),
        sa.CheckConstraint(
            "category IN ('CORE', 'ELECTIVE', 'OPTIONAL', 'TECHNICAL', 'APPLIED')",
            name="ck_class_subjects_category",
        ),
    )
    op.create_index(
        "ix_class_subjects_class_id_category", "class_subjects", ["class_id", "category"]
    )

    # =========================================================================
    # ENROLLMENT TABLES
    # =========================================================================

    op.create_table(
        "enrollments",
        _id(),
        _fk("school_id", "schools.id", "RESTRICT"),
        _fk("student_id", "students.id", "CASCADE"),
        _fk("class_id", "classes.id", "RESTRICT"),
        _fk("stream_id", "streams.id", "SET NULL", nullable=True),
        _fk("academic_year_id", "academic_years.id", "RESTRICT"),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        _fk("promoted_to_id", "classes.id", "SET NULL", nullable=True),
        sa.Column("promotion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("transfer_date", sa.Date, nullable=True),
        sa.Column("transfer_reason", sa.Text, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'PROMOTED', 'TRANSFERRED')",
            name="ck_enrollments_status",
        ),
    )
    op.create_index("ix_enrollments_school_id", "enrollments", ["school_id"])
    op.create_index("ix_enrollments_class_id", "enrollments", ["class_id"])
    op.create_index(
        "ix_enrollments_student_year_status",
        "enrollments",
        ["student_id", "academic_year_id", "status"],
    )

    op.create_table(
        "subject_enrollments",
        _id(),
        _fk("school_id", "schools.id", "RESTRICT"),
        _fk("student_id", "students.id", "CASCADE"),
        _fk("enrollment_id", "enrollments.id", "CASCADE"),
        _fk("class_subject_id", "class_subjects.id", "CASCADE"),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("dropped_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "student_id",
            "class_subject_id",
            "enrollment_id",
            name="uq_subject_enrollments_student_binding_enrollment",
        ),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'DROPPED', 'COMPLETED', 'FAILED')",
            name="ck_subject_enrollments_status",
        ),
    )
    op.create_index(
        "ix_subject_enrollments_enrollment_id", "subject_enrollments", ["enrollment_id"]
    )
    op.create_index(
        "ix_subject_enrollments_class_subject_id", "subject_enrollments", ["class_subject_id"]
    )

    # =========================================================================
    # SEQUENCE COUNTERS
    # =========================================================================

    op.create_table(
        "sequences",
        _id(),
        sa.Column("key", sa.String(200), unique=True, nullable=False),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("school_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("year", sa.Integer, nullable=True),
        sa.Column("current_value", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("prefix", sa.String(20), nullable=False),
        sa.Column("last_generated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sequences_kind", "sequences", ["kind"])


def downgrade() -> None:
    """Drop records database tables."""
    op.drop_table("sequences")
    op.drop_table("subject_enrollments")
    op.drop_table("enrollments")
    op.drop_table("class_subjects")
    op.drop_table("subjects")
    op.drop_table("streams")
    op.drop_table("classes")
    op.drop_table("terms")
    op.drop_table("academic_years")
    op.drop_table("teachers")
    op.drop_table("students")
    op.drop_table("schools")
