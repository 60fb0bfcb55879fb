# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequence registry API endpoints.

This module provides endpoints for minting and inspecting identifiers:
- POST /{kind}/next - Mint the next identifier
- GET /{kind}/peek - Preview the next identifier (advisory)
- GET /{kind}/current - Raw counter value
- POST /{kind}/batch - Mint several identifiers
- GET /{kind}/stats - Counter statistics
- POST /{kind}/reset - Administrative counter reset (superuser only)

Tenant users always mint for their own school. Superusers may name a
target school explicitly.
"""

import logging

from fastapi import APIRouter, Query, status

from src.api.dependencies import Scope, Sequences, SuperUser
from src.domains.tenancy import TenantScope
from src.models.sequence import (
    SequenceBatchRequest,
    SequenceBatchResponse,
    SequenceCurrentResponse,
    SequenceKind,
    SequenceResetRequest,
    SequenceStatsResponse,
    SequenceValueResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _target_tenant(scope: TenantScope, requested: str | None) -> str | None:
    """Pick the school a sequence call acts for.

    Raises:
        AccessDeniedError: If a tenant user names another school.
    """
    if requested is None:
        return scope.tenant_id
    scope.require_write(requested)
    return requested


@router.post(
    "/{kind}/next",
    response_model=SequenceValueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mint next identifier",
)
async def next_identifier(
    kind: SequenceKind,
    service: Sequences,
    scope: Scope,
    school_id: str | None = Query(None, description="Target school (superuser only)"),
) -> SequenceValueResponse:
    """Atomically claim the next value of a sequence."""
    identifier = await service.next(kind, _target_tenant(scope, school_id))
    return SequenceValueResponse(kind=kind, identifier=identifier)


@router.get(
    "/{kind}/peek",
    response_model=SequenceValueResponse,
    summary="Preview next identifier",
)
async def peek_identifier(
    kind: SequenceKind,
    service: Sequences,
    scope: Scope,
    school_id: str | None = Query(None),
) -> SequenceValueResponse:
    """Identifier the next mint would return if no other caller races in."""
    identifier = await service.peek(kind, _target_tenant(scope, school_id))
    return SequenceValueResponse(kind=kind, identifier=identifier)


@router.get(
    "/{kind}/current",
    response_model=SequenceCurrentResponse,
    summary="Current counter value",
)
async def current_value(
    kind: SequenceKind,
    service: Sequences,
    scope: Scope,
    school_id: str | None = Query(None),
) -> SequenceCurrentResponse:
    """Raw counter value, absent before first use."""
    value = await service.current_value(kind, _target_tenant(scope, school_id))
    return SequenceCurrentResponse(kind=kind, current_value=value)


@router.post(
    "/{kind}/batch",
    response_model=SequenceBatchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mint identifiers in batch",
)
async def batch_identifiers(
    kind: SequenceKind,
    data: SequenceBatchRequest,
    service: Sequences,
    scope: Scope,
) -> SequenceBatchResponse:
    """Mint count identifiers, each durable on its own."""
    numbers = await service.batch(kind, data.count, _target_tenant(scope, data.school_id))
    return SequenceBatchResponse(kind=kind, numbers=numbers, count=len(numbers))


@router.get(
    "/{kind}/stats",
    response_model=SequenceStatsResponse,
    summary="Sequence statistics",
)
async def sequence_stats(
    kind: SequenceKind,
    service: Sequences,
    scope: Scope,
    school_id: str | None = Query(None),
) -> SequenceStatsResponse:
    """Counter totals for a kind. Superusers see every school unless filtered."""
    return await service.stats(kind, _target_tenant(scope, school_id))


@router.post(
    "/{kind}/reset",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset counter",
)
async def reset_sequence(
    kind: SequenceKind,
    data: SequenceResetRequest,
    service: Sequences,
    current_user: SuperUser,
) -> None:
    """Set a counter to an explicit value; the next mint returns start_value + 1."""
    logger.info("Sequence reset requested by %s for %s", current_user.id, kind.value)
    await service.reset(kind, data.start_value, data.school_id)
