# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PostgreSQL access for the records core.

Contents:
- connection: async engine and session management (asyncpg)
- transactions: run_in_transaction() with isolation and bounded retry
- models: ORM models for schools, enrollments and sequence counters
- migrations: programmatic migration runner

Example:
    from src.infrastructure.database import get_session, run_in_transaction

    async with get_session() as session:
        await run_in_transaction(session, work, isolation_level="SERIALIZABLE")
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
    ping_database,
)
from src.infrastructure.database.transactions import (
    TRANSIENT_SQLSTATES,
    is_transient_error,
    run_in_transaction,
)

__all__ = [
    # Connection
    "DatabaseError",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
    "ping_database",
    # Transactions
    "TRANSIENT_SQLSTATES",
    "is_transient_error",
    "run_in_transaction",
]
