# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the session ledger.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Local calendar date policy
"""

from src.utils.datetime import (
    add_weeks,
    at_local_time,
    js_weekday,
    local_now,
    local_today,
    parse_local_date,
    parse_local_moment,
    utc_now,
)
from src.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "local_now",
    "local_today",
    "parse_local_date",
    "parse_local_moment",
    "at_local_time",
    "js_weekday",
    "add_weeks",
]
