# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Settings of the school records core.

Example:
    >>> from src.core.config import get_settings
    >>> get_settings().sequence.max_batch_size
    1000
"""

from src.core.config.settings import (
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    SequenceSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "DatabaseSettings",
    "JWTSettings",
    "SequenceSettings",
    "CORSSettings",
]
