# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Engine and session lifecycle of the records database.

One async engine (asyncpg) serves every school. The API opens it in the
application lifespan with init_database() and hands one session per request
to the domain services, which manage their own transactions.

Example:
    await init_database(get_settings())

    async with get_session() as session:
        scope = TenantScope.for_tenant(school_id)
        await EnrollmentService(session).history(student_id, scope)
"""

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """The records database is not initialized or not reachable.

    Attributes:
        message: Description safe to show in health output.
        original_error: Driver or SQLAlchemy error, when there is one.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_database(settings: "Settings") -> None:
    """Create the engine and session factory.

    Sessions do not expire on commit, because services return response
    models built from ORM rows after their transaction has committed.

    Raises:
        DatabaseError: If the engine cannot be created from the settings.
    """
    global _engine, _sessionmaker

    db = settings.database
    try:
        _engine = create_async_engine(
            db.url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=True,
            echo=settings.debug and settings.log_level == "DEBUG",
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Invalid records database configuration", e) from e

    _sessionmaker = async_sessionmaker(
        bind=_engine,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_database() -> None:
    """Dispose of the engine. Calling it twice is harmless."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


def get_engine() -> AsyncEngine:
    """The initialized engine.

    Raises:
        DatabaseError: If init_database() has not run.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """The initialized session factory.

    Raises:
        DatabaseError: If init_database() has not run.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Open a session for one unit of work.

    Nothing is committed here; run_in_transaction() commits. Work still
    pending when the caller fails is rolled back.
    """
    async with get_sessionmaker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def ping_database() -> float:
    """Round-trip a trivial query.

    Returns:
        Latency in milliseconds.

    Raises:
        DatabaseError: If the database is not initialized or not reachable.
    """
    engine = get_engine()
    started = time.perf_counter()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        raise DatabaseError("Database unreachable", e) from e
    return (time.perf_counter() - started) * 1000
