# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for tenant scope resolution and query predicates."""

from dataclasses import dataclass

import pytest
from sqlalchemy.dialects import postgresql

from src.core.errors import AccessDeniedError, ErrorKind, NotFoundError, RecordsError
from src.domains.tenancy import TenantScope, resolve_scope
from src.infrastructure.database.models import Enrollment


@dataclass
class FakePrincipal:
    """Principal stand-in with the two attributes the resolver reads."""

    user_type: str | None
    school_id: str | None


def _compile(expression):
    return expression.compile(dialect=postgresql.dialect())


def _sql(expression) -> str:
    return str(_compile(expression))


class TestResolveScope:
    """Tests for resolve_scope."""

    def test_superuser_has_no_tenant_restriction(self):
        """A super admin resolves to a superuser scope."""
        scope = resolve_scope(FakePrincipal(user_type="super_admin", school_id=None))

        assert scope.is_superuser
        assert not scope.is_empty

    def test_school_user_is_restricted_to_school(self, sample_tenant_id):
        """A staff member resolves to their own school."""
        scope = resolve_scope(FakePrincipal(user_type="school_admin", school_id=sample_tenant_id))

        assert not scope.is_superuser
        assert scope.tenant_id == sample_tenant_id

    def test_user_without_school_is_empty(self):
        """A non-superuser without a school sees nothing."""
        scope = resolve_scope(FakePrincipal(user_type="teacher", school_id=None))

        assert scope.is_empty


class TestWherePredicate:
    """Tests for TenantScope.where."""

    def test_tenant_predicate_filters_school(self, tenant_scope, sample_tenant_id):
        """Tenant users get school_id = tenant conjoined."""
        compiled = _compile(tenant_scope.where(Enrollment.school_id))

        assert str(compiled).startswith("enrollments.school_id = ")
        assert sample_tenant_id in compiled.params.values()

    def test_superuser_predicate_is_true(self, superuser_scope):
        """Superusers add no tenant restriction."""
        assert _sql(superuser_scope.where(Enrollment.school_id)) == "true"

    def test_empty_scope_fails_closed(self):
        """An empty scope matches no rows at all."""
        assert _sql(TenantScope().where(Enrollment.school_id)) == "false"


class TestOwnership:
    """Tests for owns and require_write."""

    def test_owns_own_school(self, tenant_scope, sample_tenant_id, other_tenant_id):
        """Only the scope's own school is owned."""
        assert tenant_scope.owns(sample_tenant_id)
        assert not tenant_scope.owns(other_tenant_id)
        assert not tenant_scope.owns(None)

    def test_superuser_owns_everything(self, superuser_scope, other_tenant_id):
        """Superusers may write anywhere."""
        assert superuser_scope.owns(other_tenant_id)
        superuser_scope.require_write(other_tenant_id)

    def test_cross_tenant_write_is_denied(self, tenant_scope, other_tenant_id):
        """Writing into another school raises AccessDenied."""
        with pytest.raises(AccessDeniedError) as exc_info:
            tenant_scope.require_write(other_tenant_id)

        assert exc_info.value.kind == ErrorKind.ACCESS_DENIED

    def test_empty_scope_cannot_write(self, sample_tenant_id):
        """An empty scope cannot write anything."""
        with pytest.raises(AccessDeniedError):
            TenantScope().require_write(sample_tenant_id)


class TestErrorKinds:
    """Tests for the shared error hierarchy."""

    def test_kind_and_message(self):
        """Errors carry a kind and a caller-safe message."""
        error = NotFoundError("Student not found")

        assert isinstance(error, RecordsError)
        assert error.kind == ErrorKind.NOT_FOUND
        assert error.message == "Student not found"
        assert str(error) == "Student not found"

    def test_kind_values_are_stable(self):
        """Error kind strings are part of the HTTP contract."""
        assert [kind.value for kind in ErrorKind] == [
            "not_found",
            "conflict",
            "validation_error",
            "access_denied",
            "transient_store_error",
        ]
