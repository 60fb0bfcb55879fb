# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sequence registry domain.

Durable counters keyed by (kind, school, period) that mint human-readable
identifiers such as admission and employee numbers.

Exports:
    SequenceService: Counter operations.
    SequenceConfig: Per-kind formatting rules.
    SequenceKind: Named counter series.
"""

from src.domains.sequence.config import (
    DEFAULT_CONFIGS,
    SequenceConfig,
    build_key,
    decode_value,
    format_identifier,
    get_config,
)
from src.domains.sequence.service import (
    InvalidBatchSizeError,
    InvalidStartValueError,
    SequenceService,
    SequenceServiceError,
)
from src.models.sequence import SequenceKind

__all__ = [
    "DEFAULT_CONFIGS",
    "SequenceConfig",
    "SequenceKind",
    "build_key",
    "decode_value",
    "format_identifier",
    "get_config",
    "SequenceService",
    "SequenceServiceError",
    "InvalidBatchSizeError",
    "InvalidStartValueError",
]
