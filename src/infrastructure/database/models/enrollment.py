# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment models.

An Enrollment places a student in a class (and optionally a stream) for an
academic year. SubjectEnrollment rows hang off an Enrollment, one per
class-subject binding the student takes.

There is deliberately no unique constraint on (student_id,
academic_year_id) for enrollments: promoted and transferred rows share the
pair with the ACTIVE one. The one-ACTIVE-per-year rule is checked by the
enrollment service.
"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class EnrollmentStatus(str, Enum):
    """Lifecycle state of an enrollment."""

    ACTIVE = "ACTIVE"
    PROMOTED = "PROMOTED"
    TRANSFERRED = "TRANSFERRED"


class SubjectEnrollmentStatus(str, Enum):
    """Lifecycle state of a subject enrollment."""

    ACTIVE = "ACTIVE"
    DROPPED = "DROPPED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Enrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's placement in a class for one academic year."""

    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollments_school_id", "school_id"),
        Index("ix_enrollments_student_year_status", "student_id", "academic_year_id", "status"),
        Index("ix_enrollments_class_id", "class_id"),
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="RESTRICT"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False
    )
    stream_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), ForeignKey("streams.id", ondelete="SET NULL"), nullable=True
    )
    academic_year_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EnrollmentStatus.ACTIVE.value
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    promoted_to_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True
    )
    promotion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    transfer_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    transfer_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_active(self) -> bool:
        """Check if the enrollment is the student's current placement."""
        return self.status == EnrollmentStatus.ACTIVE.value


class SubjectEnrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's enrollment in one class-subject binding."""

    __tablename__ = "subject_enrollments"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "class_subject_id",
            "enrollment_id",
            name="uq_subject_enrollments_student_binding_enrollment",
        ),
        Index("ix_subject_enrollments_enrollment_id", "enrollment_id"),
        Index("ix_subject_enrollments_class_subject_id", "class_subject_id"),
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="RESTRICT"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    enrollment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False
    )
    class_subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubjectEnrollmentStatus.ACTIVE.value
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    dropped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
