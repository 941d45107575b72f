# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    enrollments: Session entitlement ledger (create, update, defer, renew, bonus).
    attendance: Attendance marks and session accounting.
    absences: Planned absence requests.
    makeups: Makeup requests and available makeup classes.
    classes: Class catalog, membership and per-day cancellation.
"""

from fastapi import APIRouter

from src.api.v1 import absences, attendance, classes, enrollments, makeups

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
router.include_router(absences.router, prefix="/absences", tags=["Absences"])
router.include_router(makeups.router, prefix="/makeups", tags=["Makeups"])
router.include_router(classes.router, prefix="/classes", tags=["Classes"])

__all__ = ["router"]
