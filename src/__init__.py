"""School records core.

Academic enrollment state machine, subject enrollment manager and
collision-free sequence numbering for a multi-tenant school records system.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
