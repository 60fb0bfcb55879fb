# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant scope domain.

Exports:
    TenantScope: Resolved (tenant_id, is_superuser) pair with query predicates.
    resolve_scope: Derive a TenantScope from an authenticated principal.
"""

from src.domains.tenancy.scope import SUPERUSER_TYPES, Principal, TenantScope, resolve_scope

__all__ = [
    "SUPERUSER_TYPES",
    "Principal",
    "TenantScope",
    "resolve_scope",
]
