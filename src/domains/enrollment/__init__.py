# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides the session entitlement ledger:
- Enrollment creation, update, renewal and bonus grants
- Attendance summaries per enrollment
- One-time deferral with absence back-fill
"""

from src.domains.enrollment.deferral import (
    AlreadyDeferredError,
    DeferralService,
    InvalidDeferralError,
    deferral_dates,
)
from src.domains.enrollment.service import (
    ActiveEnrollmentExistsError,
    EnrollmentNotFoundError,
    EnrollmentService,
    InvalidBonusError,
    InvalidPlanError,
)

__all__ = [
    "EnrollmentService",
    "DeferralService",
    "EnrollmentNotFoundError",
    "ActiveEnrollmentExistsError",
    "InvalidPlanError",
    "InvalidBonusError",
    "InvalidDeferralError",
    "AlreadyDeferredError",
    "deferral_dates",
]
