# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Makeup request domain package."""

from src.domains.makeup.service import (
    MakeupNotFoundError,
    MakeupNotPendingError,
    MakeupService,
    next_occurrence,
)

__all__ = [
    "MakeupService",
    "MakeupNotFoundError",
    "MakeupNotPendingError",
    "next_occurrence",
]
