# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Catalog service."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.core.errors import NotFoundError
from src.domains.catalog import (
    CatalogService,
    ClassNotFoundError,
    SchoolNotFoundError,
    StreamClassMismatchError,
    StreamNotFoundError,
    StudentNotFoundError,
)
from src.domains.tenancy import TenantScope
from src.infrastructure.database.models import SubjectCategory


@pytest.fixture
def catalog_service(mock_db):
    """Create catalog service with mock database."""
    return CatalogService(db=mock_db)


def _executed_sql(mock_db) -> str:
    stmt = mock_db.execute.await_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestLookups:
    """Tests for single-record lookups."""

    @pytest.mark.asyncio
    async def test_get_student_found(self, catalog_service, mock_db, make_result, tenant_scope):
        """A visible student is returned."""
        student = MagicMock(id=str(uuid4()))
        mock_db.execute.return_value = make_result(scalar=student)

        assert await catalog_service.get_student(student.id, tenant_scope) is student

    @pytest.mark.asyncio
    async def test_get_student_excludes_soft_deleted(self, catalog_service, mock_db, make_result, tenant_scope):
        """Soft-deleted students are filtered in the query."""
        mock_db.execute.return_value = make_result(scalar=MagicMock())

        await catalog_service.get_student(str(uuid4()), tenant_scope)

        sql = _executed_sql(mock_db)
        assert "students.deleted_at IS NULL" in sql
        assert "students.school_id = " in sql

    @pytest.mark.asyncio
    async def test_get_student_missing(self, catalog_service, mock_db, make_result, tenant_scope):
        """Absent and out-of-scope students both raise NotFound."""
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(StudentNotFoundError) as exc_info:
            await catalog_service.get_student(str(uuid4()), tenant_scope)

        assert isinstance(exc_info.value, NotFoundError)

    @pytest.mark.asyncio
    async def test_empty_scope_queries_nothing(self, catalog_service, mock_db, make_result):
        """An empty scope adds an always-false predicate."""
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(ClassNotFoundError):
            await catalog_service.get_class(str(uuid4()), TenantScope())

        assert "false" in _executed_sql(mock_db)

    @pytest.mark.asyncio
    async def test_get_stream_of_other_class(self, catalog_service, mock_db, make_result, tenant_scope):
        """A stream must belong to the requested class."""
        mock_db.execute.return_value = make_result(scalar=MagicMock(class_id="class-b"))

        with pytest.raises(StreamClassMismatchError):
            await catalog_service.get_stream("stream-1", "class-a", tenant_scope)

    @pytest.mark.asyncio
    async def test_get_stream_missing(self, catalog_service, mock_db, make_result, tenant_scope):
        """Unknown streams raise NotFound."""
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(StreamNotFoundError):
            await catalog_service.get_stream("stream-1", "class-a", tenant_scope)

    @pytest.mark.asyncio
    async def test_get_active_school_missing(self, catalog_service, mock_db, make_result):
        """Inactive or unknown schools raise NotFound."""
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(SchoolNotFoundError):
            await catalog_service.get_active_school(str(uuid4()))

        assert "schools.is_active IS true" in _executed_sql(mock_db)


class TestBindings:
    """Tests for class-subject binding queries."""

    @pytest.mark.asyncio
    async def test_core_bindings_filters_category(self, catalog_service, mock_db, make_result, tenant_scope):
        """Only CORE bindings are returned for auto-enrollment."""
        bindings = [MagicMock(category=SubjectCategory.CORE.value)]
        mock_db.execute.return_value = make_result(scalars=bindings)

        result = await catalog_service.core_bindings("class-a", tenant_scope)

        assert list(result) == bindings
        sql = _executed_sql(mock_db)
        assert "class_subjects.category IN" in sql
        assert "ORDER BY class_subjects.created_at, class_subjects.id" in sql

    @pytest.mark.asyncio
    async def test_bindings_stream_narrowing(self, catalog_service, mock_db, make_result, tenant_scope):
        """Stream narrowing keeps bindings shared by every stream."""
        mock_db.execute.return_value = make_result(scalars=[])

        await catalog_service.bindings(
            "class-a",
            tenant_scope,
            exclude_categories=[SubjectCategory.CORE],
            stream_id="stream-1",
        )

        sql = _executed_sql(mock_db)
        assert "class_subjects.category NOT IN" in sql
        assert "class_subjects.stream_id IS NULL OR class_subjects.stream_id = " in sql
