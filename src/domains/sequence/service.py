# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequence registry service.

This module provides the SequenceService class for:
- Minting collision-free identifiers (next, batch)
- Advisory previews and raw counter reads (peek, current_value)
- Administrative counter resets
- Per-kind counter statistics

Each next() call is a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING
statement run in its own transaction. The row lock taken by the upsert
serializes concurrent callers on the same key, so two callers can never
claim the same value. Serialization failures are retried by
run_in_transaction(); a retry claims a fresh value.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.errors import ValidationError
from src.domains.sequence.config import (
    SequenceConfig,
    build_key,
    format_identifier,
    get_config,
)
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.sequence import Sequence
from src.infrastructure.database.transactions import run_in_transaction
from src.models.sequence import SchoolSequenceStats, SequenceKind, SequenceStatsResponse
from src.utils.datetime import current_year, utc_now

logger = logging.getLogger(__name__)


class SequenceServiceError(Exception):
    """Base exception for sequence service errors."""

    pass


class InvalidBatchSizeError(SequenceServiceError, ValidationError):
    """Raised when a batch count is outside the allowed range."""

    pass


class InvalidStartValueError(SequenceServiceError, ValidationError):
    """Raised when a reset value is negative."""

    pass


class SequenceService:
    """Service for durable, transactionally incremented counters.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize sequence service.

        Args:
            db: Async database session.
        """
        self.db = db
        settings = get_settings()
        self._isolation_level = settings.database.isolation_level
        self._max_batch_size = settings.sequence.max_batch_size
        self._tenant_code_length = settings.sequence.tenant_code_length
        self._tenant_scoped_kinds = frozenset(settings.sequence.tenant_scoped_kinds_list)

    async def next(
        self,
        kind: SequenceKind,
        tenant_id: str | None = None,
        config: SequenceConfig | None = None,
    ) -> str:
        """Claim the next value of a counter and format it.

        The counter row is created at 1 on first use of a key.

        Args:
            kind: Sequence kind.
            tenant_id: School the identifier is minted for.
            config: Replaces the kind's configuration for this call. Library
                callers only; the API always mints with config_for(kind), and
                peek, current_value and reset only see keys built that way.

        Returns:
            The formatted identifier.

        Raises:
            TransientStoreError: If concurrent writers kept conflicting.
        """
        cfg = config or self.config_for(kind)
        year = current_year()
        key = build_key(kind, cfg, tenant_id, year)

        async def _claim(session: AsyncSession) -> int:
            now = utc_now()
            stmt = (
                insert(Sequence)
                .values(
                    id=new_id(),
                    key=key,
                    kind=kind.value,
                    school_id=tenant_id if cfg.include_tenant else None,
                    year=year if cfg.reset_annually else None,
                    current_value=1,
                    prefix=cfg.prefix,
                    last_generated_at=now,
                )
                .on_conflict_do_update(
                    index_elements=[Sequence.key],
                    set_={
                        "current_value": Sequence.current_value + 1,
                        "last_generated_at": now,
                        "updated_at": now,
                    },
                )
                .returning(Sequence.current_value)
            )
            result = await session.execute(stmt)
            return result.scalar_one()

        value = await run_in_transaction(
            self.db, _claim, isolation_level=self._isolation_level
        )
        formatted = self._format(value, cfg, year, tenant_id)

        logger.info(
            "Sequence generated: kind=%s, key=%s, value=%s, formatted=%s",
            kind.value,
            key,
            value,
            formatted,
        )

        return formatted

    async def peek(self, kind: SequenceKind, tenant_id: str | None = None) -> str:
        """Preview the identifier the next call would produce.

        Advisory only: a concurrent caller may claim it first.
        """
        cfg = self.config_for(kind)
        year = current_year()
        value = await self._read_value(build_key(kind, cfg, tenant_id, year))
        next_value = value + 1 if value is not None else 1
        return self._format(next_value, cfg, year, tenant_id)

    async def current_value(
        self,
        kind: SequenceKind,
        tenant_id: str | None = None,
    ) -> int | None:
        """Get the raw counter value, or None if the key was never used."""
        cfg = self.config_for(kind)
        return await self._read_value(build_key(kind, cfg, tenant_id, current_year()))

    async def reset(
        self,
        kind: SequenceKind,
        start_value: int,
        tenant_id: str | None = None,
    ) -> None:
        """Set a counter to an explicit value.

        The next call to next() returns start_value + 1.

        Args:
            kind: Sequence kind.
            start_value: New counter value.
            tenant_id: School the counter belongs to.

        Raises:
            InvalidStartValueError: If start_value is negative.
        """
        if start_value < 0:
            raise InvalidStartValueError("Start value must not be negative")

        cfg = self.config_for(kind)
        year = current_year()
        key = build_key(kind, cfg, tenant_id, year)

        async def _reset(session: AsyncSession) -> None:
            now = utc_now()
            stmt = (
                insert(Sequence)
                .values(
                    id=new_id(),
                    key=key,
                    kind=kind.value,
                    school_id=tenant_id if cfg.include_tenant else None,
                    year=year if cfg.reset_annually else None,
                    current_value=start_value,
                    prefix=cfg.prefix,
                    last_generated_at=now,
                )
                .on_conflict_do_update(
                    index_elements=[Sequence.key],
                    set_={
                        "current_value": start_value,
                        "last_generated_at": now,
                        "updated_at": now,
                    },
                )
            )
            await session.execute(stmt)

        await run_in_transaction(self.db, _reset, isolation_level=self._isolation_level)

        logger.warning(
            "Sequence reset: kind=%s, key=%s, start_value=%s",
            kind.value,
            key,
            start_value,
        )

    async def batch(
        self,
        kind: SequenceKind,
        count: int,
        tenant_id: str | None = None,
    ) -> list[str]:
        """Mint count identifiers one after another.

        Each identifier is claimed in its own transaction, so a failure part
        way leaves the already minted ones durable.

        Raises:
            InvalidBatchSizeError: If count is outside 1..max_batch_size.
        """
        if count < 1 or count > self._max_batch_size:
            raise InvalidBatchSizeError(
                f"Count must be between 1 and {self._max_batch_size}"
            )

        numbers = []
        for _ in range(count):
            numbers.append(await self.next(kind, tenant_id))
        return numbers

    async def stats(
        self,
        kind: SequenceKind,
        tenant_id: str | None = None,
    ) -> SequenceStatsResponse:
        """Get counter statistics of a kind.

        Annually reset kinds only report the current year's counters. The
        tenant filter only applies to kinds that fold the tenant into the key;
        other kinds have one shared counter row per period.
        """
        cfg = self.config_for(kind)
        query = select(Sequence).where(Sequence.kind == kind.value)
        if tenant_id and cfg.include_tenant:
            query = query.where(Sequence.school_id == tenant_id)
        if cfg.reset_annually:
            query = query.where(Sequence.year == current_year())
        query = query.order_by(Sequence.current_value.desc())

        result = await self.db.execute(query)
        rows = result.scalars().all()

        return SequenceStatsResponse(
            kind=kind,
            total=sum(row.current_value for row in rows),
            by_school=[
                SchoolSequenceStats(
                    school_id=row.school_id,
                    year=row.year,
                    current_value=row.current_value,
                    last_generated_at=row.last_generated_at,
                )
                for row in rows
            ],
        )

    def config_for(self, kind: SequenceKind) -> SequenceConfig:
        """Get the configuration every operation of this service uses for kind.

        Kinds listed in SEQUENCE_TENANT_SCOPED_KINDS fold the tenant into
        their key, giving each school its own counter.
        """
        cfg = get_config(kind)
        if kind.value in self._tenant_scoped_kinds and not cfg.include_tenant:
            return cfg.with_overrides(include_tenant=True)
        return cfg

    async def next_admission_number(self, tenant_id: str | None = None) -> str:
        """Mint a student admission number."""
        return await self.next(SequenceKind.ADMISSION_NUMBER, tenant_id)

    async def next_employee_number(self, tenant_id: str | None = None) -> str:
        """Mint a teacher employee number."""
        return await self.next(SequenceKind.EMPLOYEE_NUMBER, tenant_id)

    async def next_receipt_number(self, tenant_id: str | None = None) -> str:
        """Mint a payment receipt number."""
        return await self.next(SequenceKind.RECEIPT_NUMBER, tenant_id)

    async def _read_value(self, key: str) -> int | None:
        result = await self.db.execute(
            select(Sequence.current_value).where(Sequence.key == key)
        )
        return result.scalar_one_or_none()

    def _format(
        self,
        value: int,
        cfg: SequenceConfig,
        year: int,
        tenant_id: str | None,
    ) -> str:
        return format_identifier(
            value,
            cfg,
            year=year,
            tenant_id=tenant_id,
            tenant_code_length=self._tenant_code_length,
        )
