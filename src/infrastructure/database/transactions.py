# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transaction helper with isolation control and bounded retry.

Every write path in the domain services goes through run_in_transaction().
The unit of work is a coroutine function receiving the session; it is
executed inside one database transaction that is committed on success and
rolled back on any exception.

PostgreSQL reports serialization failures (SQLSTATE 40001) and deadlocks
(40P01) when concurrent SERIALIZABLE transactions collide. Those attempts
are rolled back and the whole unit of work is re-run, so a retried
sequence increment claims a fresh value rather than reusing the failed one.
After the configured number of attempts the failure surfaces as
TransientStoreError, which callers may retry.

Example:
    async def _claim(session: AsyncSession) -> int:
        result = await session.execute(stmt)
        return result.scalar_one()

    value = await run_in_transaction(db, _claim, isolation_level="SERIALIZABLE")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.errors import ConflictError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})


def _sqlstate(error: DBAPIError) -> str | None:
    """Extract the SQLSTATE code from a wrapped driver error."""
    orig = error.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    # asyncpg errors are chained behind the DBAPI adapter
    cause = getattr(orig, "__cause__", None)
    code = getattr(cause, "sqlstate", None)
    return str(code) if code else None


def is_transient_error(error: BaseException) -> bool:
    """Check whether an error is a retryable transaction conflict.

    Args:
        error: Exception raised while executing a transaction.

    Returns:
        True for serialization failures and deadlocks.
    """
    if not isinstance(error, DBAPIError):
        return False
    return _sqlstate(error) in TRANSIENT_SQLSTATES


async def run_in_transaction(
    session: AsyncSession,
    work: Callable[[AsyncSession], Awaitable[T]],
    isolation_level: str | None = None,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> T:
    """Run a unit of work inside a single committed transaction.

    Args:
        session: Async database session.
        work: Coroutine function executed with the session.
        isolation_level: Isolation level for the transaction. Only applied
            when the session has no transaction in progress.
        max_attempts: Attempts before giving up on transient conflicts.
            Defaults to database.max_transaction_attempts.
        backoff_seconds: Base delay between attempts, multiplied by the
            attempt number. Defaults to database.retry_backoff_seconds.

    Returns:
        Whatever the unit of work returns.

    Raises:
        ConflictError: If a uniqueness or foreign key constraint rejects
            the write.
        TransientStoreError: If the transaction kept conflicting with
            concurrent writers.
    """
    db_settings = get_settings().database
    attempts = max_attempts if max_attempts is not None else db_settings.max_transaction_attempts
    backoff = backoff_seconds if backoff_seconds is not None else db_settings.retry_backoff_seconds

    attempt = 1
    while True:
        try:
            if isolation_level and not session.in_transaction():
                await session.connection(
                    execution_options={"isolation_level": isolation_level}
                )
            result = await work(session)
            await session.commit()
            return result
        except IntegrityError as e:
            await session.rollback()
            logger.info("Write rejected by constraint: %s", e.orig)
            raise ConflictError("Record conflicts with an existing record") from e
        except DBAPIError as e:
            await session.rollback()
            if not is_transient_error(e):
                raise
            if attempt >= attempts:
                logger.warning(
                    "Transaction conflict persisted after %d attempts", attempts
                )
                raise TransientStoreError(
                    "Concurrent update conflict, please retry"
                ) from e
            logger.warning(
                "Transaction conflict (sqlstate=%s), retrying attempt %d/%d",
                _sqlstate(e),
                attempt + 1,
                attempts,
            )
            await asyncio.sleep(backoff * attempt)
            attempt += 1
        except Exception:
            await session.rollback()
            raise
