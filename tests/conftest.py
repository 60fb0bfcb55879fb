# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared fixtures: settings isolation, tenant ids and scopes, and mocked
async sessions for the service unit tests.
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config import clear_settings_cache
from src.domains.tenancy import TenantScope


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reload settings for every test with a fast retry backoff."""
    monkeypatch.setenv("DB_RETRY_BACKOFF_SECONDS", "0")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
    clear_settings_cache()
    yield
    clear_settings_cache()


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: service logic against mocked sessions")
    config.addinivalue_line("markers", "integration: needs the ASGI app or a PostgreSQL database")


@pytest.fixture
def mock_db() -> AsyncMock:
    """AsyncSession stand-in with synchronous add().

    in_transaction() reports an idle session so that the transaction
    helper requests the configured isolation level.
    """
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.in_transaction = MagicMock(return_value=False)
    db.connection = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def sample_tenant_id() -> str:
    """School the tests act for."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def other_tenant_id() -> str:
    """A different school, for cross-tenant checks."""
    return "660e8400-e29b-41d4-a716-446655440099"


@pytest.fixture
def sample_student_id() -> str:
    """Student id used by enrollment tests."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def tenant_scope(sample_tenant_id: str) -> TenantScope:
    """Scope of a school staff member."""
    return TenantScope.for_tenant(sample_tenant_id)


@pytest.fixture
def superuser_scope() -> TenantScope:
    """Scope of a platform superuser."""
    return TenantScope.superuser()


@pytest.fixture
def make_result():
    """Factory for mocked SQLAlchemy results.

    Keyword arguments:
        scalar: Value for scalar_one_or_none() / scalar_one() / scalar().
        scalars: Rows for scalars().all() and all().
        rowcount: Rows affected by an UPDATE.
    """

    def _make(scalar: object = None, scalars: list | None = None, rowcount: int = 0) -> MagicMock:
        result = MagicMock()
        result.scalar_one_or_none.return_value = scalar
        result.scalar_one.return_value = scalar
        result.scalar.return_value = scalar
        result.scalars.return_value.all.return_value = scalars or []
        result.all.return_value = scalars or []
        result.rowcount = rowcount
        return result

    return _make
