# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for the school records service.

This package contains cross-domain building blocks:
- config: Application configuration and settings
- errors: Typed error kinds shared by every domain service
"""
