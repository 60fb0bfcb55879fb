# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Programmatic schema migrations for the records database.

Each module in migrations/versions is one revision exposing upgrade() and
downgrade() written with alembic's op API. Revisions are ordered by module
name (001_, 002_, ...). The applied revision is recorded in the standard
alembic_version table, so the alembic CLI can take over later.

A run applies every pending revision in a single transaction while holding
a PostgreSQL advisory lock. Instances starting at the same time queue on the
lock; the later ones find nothing pending.

Example:
    from src.infrastructure.database.migrations.runner import run_migrations

    applied = await run_migrations(get_settings().database.url)
"""

import importlib
import logging
import pkgutil
from dataclasses import dataclass, field
from types import ModuleType

from sqlalchemy import Connection, text
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from src.infrastructure.database.migrations import versions

logger = logging.getLogger(__name__)

# Arbitrary constant shared by every runner of this schema
MIGRATION_LOCK_KEY = 7_341_202_501


def discover_revisions() -> list[str]:
    """Names of the revision modules, in application order."""
    return sorted(info.name for info in pkgutil.iter_modules(versions.__path__))


MIGRATIONS = discover_revisions()


@dataclass
class MigrationStatus:
    """Where a database stands relative to the known revisions."""

    current_version: str | None
    latest_version: str | None
    pending: list[str] = field(default_factory=list)

    @property
    def is_up_to_date(self) -> bool:
        return not self.pending


def get_pending_migrations(
    current_version: str | None,
    target_revision: str | None = None,
) -> list[str]:
    """Revisions to apply to move from current_version to target_revision.

    Args:
        current_version: Revision recorded in the database, None if fresh.
        target_revision: Last revision to apply; latest when None.

    Returns:
        Revisions in order. Empty when either revision is unknown, so a
        schema written by something else is never migrated blindly.
    """
    if current_version is not None and current_version not in MIGRATIONS:
        logger.warning("Database is at unknown revision %s", current_version)
        return []
    if target_revision is not None and target_revision not in MIGRATIONS:
        logger.warning("Unknown target revision %s", target_revision)
        return []

    start = MIGRATIONS.index(current_version) + 1 if current_version else 0
    end = MIGRATIONS.index(target_revision) + 1 if target_revision else len(MIGRATIONS)
    return MIGRATIONS[start:end]


async def run_migrations(db_url: str, target_revision: str | None = None) -> list[str]:
    """Bring the database to target_revision (latest by default).

    Args:
        db_url: asyncpg database URL.
        target_revision: Optional revision to stop at.

    Returns:
        Revisions applied by this call.
    """
    engine = create_async_engine(db_url)
    try:
        async with engine.begin() as conn:
            await conn.execute(
                text("SELECT pg_advisory_xact_lock(:key)"), {"key": MIGRATION_LOCK_KEY}
            )
            current = await _current_version(conn)
            pending = get_pending_migrations(current, target_revision)
            if not pending:
                logger.info("Schema up to date at %s", current)
                return []

            for revision in pending:
                await conn.run_sync(_upgrade, _load(revision))
                logger.info("Applied migration %s", revision)

            await conn.execute(text("DELETE FROM alembic_version"))
            await conn.execute(
                text("INSERT INTO alembic_version (version_num) VALUES (:v)"),
                {"v": pending[-1]},
            )
            return pending
    finally:
        await engine.dispose()


async def get_migration_status(db_url: str) -> MigrationStatus:
    """Report the recorded revision and what is still pending."""
    engine = create_async_engine(db_url)
    try:
        async with engine.begin() as conn:
            current = await _current_version(conn)
    finally:
        await engine.dispose()

    return MigrationStatus(
        current_version=current,
        latest_version=MIGRATIONS[-1] if MIGRATIONS else None,
        pending=get_pending_migrations(current),
    )


async def _current_version(conn: AsyncConnection) -> str | None:
    await conn.execute(
        text(
            "CREATE TABLE IF NOT EXISTS alembic_version ("
            "version_num VARCHAR(32) NOT NULL, "
            "CONSTRAINT alembic_version_pkc PRIMARY KEY (version_num))"
        )
    )
    result = await conn.execute(text("SELECT version_num FROM alembic_version"))
    return result.scalar_one_or_none()


def _load(revision: str) -> ModuleType:
    """Import a revision module.

    Raises:
        ValueError: If the module lacks upgrade().
    """
    module = importlib.import_module(f"{versions.__name__}.{revision}")
    if not callable(getattr(module, "upgrade", None)):
        raise ValueError(f"Migration {revision} has no upgrade() function")
    return module


def _upgrade(connection: Connection, module: ModuleType) -> None:
    """Run module.upgrade() with alembic's op proxy bound to connection."""
    from alembic.operations import Operations
    from alembic.runtime.migration import MigrationContext

    context = MigrationContext.configure(connection)
    with Operations.context(context):
        module.upgrade()
