# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Clock helpers.

Timestamps written by the records core (enrolled_at, dropped_at,
promotion_date, last_generated_at) are timezone-aware UTC. Sequence periods
follow the UTC calendar year, so a counter rolls over at UTC midnight on
1 January regardless of the school's local time zone.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def current_year() -> int:
    """UTC calendar year used to bucket annually reset sequences."""
    return utc_now().year
