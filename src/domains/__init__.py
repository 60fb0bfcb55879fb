# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the school records core.

Each domain module provides one service that owns a slice of the academic
records and enforces its invariants.

Domains:
    tenancy: Tenant scope resolution and query predicates.
    sequence: Collision-free human-readable identifier generation.
    catalog: Read-only lookups of schools, classes, streams and subject bindings.
    enrollment: Student class enrollment lifecycle (enroll, promote, transfer).
    subject_enrollment: Per-subject enrollment records under an enrollment.
    registration: Student and teacher creation with minted identifiers.
"""
