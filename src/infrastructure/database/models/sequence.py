# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequence counter model.

One row per counter key. Rows are created lazily on first use and never
deleted, so numbers are not reused even after the records they named are.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Sequence(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Durable counter for one (kind, school, period) key.

    school_id has no foreign key: sequences outlive tenant changes and may
    be global.
    """

    __tablename__ = "sequences"

    key: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    school_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    prefix: Mapped[str] = mapped_column(String(20), nullable=False)
    last_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
