# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School structure models.

Schools are the tenants. Every other table here carries a school_id and is
only ever read through a tenant-scoped predicate.
"""

from datetime import date
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class SubjectCategory(str, Enum):
    """Category of a subject offered in a class."""

    CORE = "CORE"
    ELECTIVE = "ELECTIVE"
    OPTIONAL = "OPTIONAL"
    TECHNICAL = "TECHNICAL"
    APPLIED = "APPLIED"


class School(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A school (tenant)."""

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Student(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A student belonging to exactly one school at a time."""

    __tablename__ = "students"
    __table_args__ = (Index("ix_students_school_id", "school_id"),)

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="RESTRICT"), nullable=False
    )
    admission_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    @property
    def full_name(self) -> str:
        """Get student's full name."""
        return f"{self.first_name} {self.last_name}"


class Teacher(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A teacher employed by a school."""

    __tablename__ = "teachers"
    __table_args__ = (Index("ix_teachers_school_id", "school_id"),)

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="RESTRICT"), nullable=False
    )
    employee_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)


class AcademicYear(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An academic year of a school."""

    __tablename__ = "academic_years"
    __table_args__ = (Index("ix_academic_years_school_id", "school_id"),)

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Term(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A term within an academic year."""

    __tablename__ = "terms"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False
    )
    academic_year_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class SchoolClass(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A class (grade group) of a school."""

    __tablename__ = "classes"
    __table_args__ = (Index("ix_classes_school_id", "school_id"),)

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Stream(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A stream (section) within a class."""

    __tablename__ = "streams"
    __table_args__ = (Index("ix_streams_class_id", "class_id"),)

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class Subject(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A subject in a school's catalog."""

    __tablename__ = "subjects"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)


class ClassSubject(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A subject offered within a class.

    Optionally narrowed to one stream, academic year or term. A binding with
    stream_id NULL applies to every stream of the class.
    """

    __tablename__ = "class_subjects"
    __table_args__ = (
        Index("ix_class_subjects_class_id_category", "class_id", "category"),
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    stream_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), ForeignKey("streams.id", ondelete="CASCADE"), nullable=True
    )
    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
    academic_year_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=True
    )
    term_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True
    )
    teacher_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True
    )
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubjectCategory.CORE.value
    )
