# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain package.

This package provides class catalog functionality including:
- Class CRUD operations with same-grade overlap checks
- Student membership
- Per-day cancellation with the absence/makeup cascade
"""

from src.domains.class_.cancellation import AlreadyCancelledError, CancellationService
from src.domains.class_.service import (
    AlreadyInClassError,
    ClassFullError,
    ClassNotFoundError,
    ClassService,
    InvalidClassError,
    ScheduleConflictError,
    StudentNotInClassError,
    sessions_overlap,
)

__all__ = [
    "ClassService",
    "CancellationService",
    "ClassNotFoundError",
    "InvalidClassError",
    "ScheduleConflictError",
    "AlreadyInClassError",
    "StudentNotInClassError",
    "ClassFullError",
    "AlreadyCancelledError",
    "sessions_overlap",
]
