# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant scope resolution and query predicates.

A TenantScope is derived once per request from the authenticated principal
and passed explicitly to every domain service call. Services never look at
the principal themselves.

Rules:
- superuser: no tenant predicate is added, every school is visible.
- tenant user: every query is conjoined with school_id = tenant_id.
- neither: the scope is empty and every predicate evaluates to false, so
  reads return nothing and lookups raise NotFound.

Example:
    >>> scope = TenantScope.for_tenant("school-1")
    >>> stmt = select(Enrollment).where(scope.where(Enrollment.school_id))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import false, true
from sqlalchemy.sql.elements import ColumnElement

from src.core.errors import AccessDeniedError

logger = logging.getLogger(__name__)

SUPERUSER_TYPES = frozenset({"super_admin", "system_admin"})


class Principal(Protocol):
    """Authenticated caller as seen by the scope resolver."""

    user_type: str | None
    school_id: str | None


@dataclass(frozen=True)
class TenantScope:
    """Resolved tenant scope of a caller.

    Attributes:
        tenant_id: School the caller acts for, if any.
        is_superuser: Whether the caller may cross tenant boundaries.
    """

    tenant_id: str | None = None
    is_superuser: bool = False

    @classmethod
    def for_tenant(cls, tenant_id: str) -> TenantScope:
        """Build a scope restricted to one school."""
        return cls(tenant_id=tenant_id, is_superuser=False)

    @classmethod
    def superuser(cls, tenant_id: str | None = None) -> TenantScope:
        """Build an unrestricted scope."""
        return cls(tenant_id=tenant_id, is_superuser=True)

    @property
    def is_empty(self) -> bool:
        """True when the caller can see no records at all."""
        return not self.is_superuser and self.tenant_id is None

    def where(self, column: ColumnElement) -> ColumnElement[bool]:
        """Build the tenant predicate for a school_id column.

        Args:
            column: The school_id column of the queried table.

        Returns:
            A boolean SQL expression to conjoin with the query.
        """
        if self.is_superuser:
            return true()
        if self.tenant_id is None:
            return false()
        return column == self.tenant_id

    def owns(self, tenant_id: str | None) -> bool:
        """Check whether a row belonging to tenant_id is visible."""
        if self.is_superuser:
            return True
        return self.tenant_id is not None and tenant_id == self.tenant_id

    def require_write(self, tenant_id: str | None) -> None:
        """Ensure the caller may write rows of tenant_id.

        Raises:
            AccessDeniedError: If tenant_id is outside the scope.
        """
        if not self.owns(tenant_id):
            logger.warning(
                "Cross-tenant write rejected: scope=%s, target=%s",
                self.tenant_id,
                tenant_id,
            )
            raise AccessDeniedError("Write outside of the caller's school is not allowed")


def resolve_scope(principal: Principal) -> TenantScope:
    """Derive the tenant scope of an authenticated principal.

    Args:
        principal: Authenticated caller.

    Returns:
        TenantScope. Empty when a non-superuser has no school.
    """
    is_superuser = (principal.user_type or "") in SUPERUSER_TYPES
    scope = TenantScope(tenant_id=principal.school_id, is_superuser=is_superuser)
    if scope.is_empty:
        logger.info("Principal has no school; scope resolves to no records")
    return scope
