# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

This module provides endpoints for the session entitlement ledger:
- POST / - Create an enrollment
- GET / - List enrollments with filtering
- GET /{enrollment_id} - Get enrollment details
- PUT /{enrollment_id} - Partial update with recompute
- PATCH /{enrollment_id} - Defer the enrollment
- POST /{enrollment_id}/renew - Complete and open a successor
- POST /{enrollment_id}/bonus - Grant bonus sessions or weeks
- GET /{enrollment_id}/summary - Attendance summary

Writes require teacher or admin access.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_auth, require_teacher_or_admin
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.api.middleware.rate_limit import RATE_LIMIT_CASCADE, limiter
from src.domains.enrollment import DeferralService, EnrollmentService
from src.domains.errors import SessionLedgerError
from src.models.common import EnrollmentStatus
from src.models.enrollment import (
    AttendanceSummaryResponse,
    BonusRequest,
    DeferRequest,
    EnrollmentCreateRequest,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create enrollment",
    description="Create a pending enrollment with derived end date and session budget.",
)
async def create_enrollment(
    data: EnrollmentCreateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Create an enrollment.

    Raises:
        HTTPException: 400 on missing fields, invalid plan or an existing
            pending/active enrollment.
    """
    logger.info("Creating enrollment for student %s by %s", data.student_id, current_user.id)

    try:
        return await EnrollmentService(db).create_enrollment(data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List enrollments",
)
async def list_enrollments(
    student_id: Annotated[str | None, Query(alias="studentId")] = None,
    course_id: Annotated[str | None, Query(alias="courseId")] = None,
    enrollment_status: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500, description="Maximum results")] = 100,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentListResponse:
    """List enrollments filtered by student, course and status."""
    items, total = await EnrollmentService(db).list_enrollments(
        student_id=student_id,
        course_id=course_id,
        status=enrollment_status,
        limit=limit,
        offset=offset,
    )
    return EnrollmentListResponse(items=items, total=total)


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Get enrollment details.

    Raises:
        HTTPException: 404 if the enrollment does not exist.
    """
    try:
        return await EnrollmentService(db).get_enrollment(enrollment_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.put(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Update enrollment",
    description="Partial update. Plan changes recompute end date and session counts.",
)
async def update_enrollment(
    enrollment_id: str,
    data: EnrollmentUpdateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Update an enrollment."""
    logger.info("Updating enrollment %s by %s", enrollment_id, current_user.id)

    try:
        return await EnrollmentService(db).update_enrollment(enrollment_id, data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.patch(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Defer enrollment",
    description="One-time deferral of 1-4 weeks; pre-approves absences in the window.",
)
@limiter.limit(RATE_LIMIT_CASCADE)
async def defer_enrollment(
    request: Request,
    enrollment_id: str,
    data: DeferRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Defer an enrollment.

    Raises:
        HTTPException: 400 if weeks are out of range or the enrollment was
            already deferred, 404 if missing, 500 if the back-fill failed.
    """
    logger.info(
        "Deferring enrollment %s by %s weeks (by %s)",
        enrollment_id,
        data.deferral_weeks,
        current_user.id,
    )

    try:
        return await DeferralService(db).defer(enrollment_id, data.deferral_weeks)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.post(
    "/{enrollment_id}/renew",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Renew enrollment",
    description="Complete the enrollment and create its pending successor.",
)
async def renew_enrollment(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Renew an enrollment."""
    logger.info("Renewing enrollment %s by %s", enrollment_id, current_user.id)

    try:
        return await EnrollmentService(db).renew_enrollment(enrollment_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.post(
    "/{enrollment_id}/bonus",
    response_model=EnrollmentResponse,
    summary="Add bonus",
)
async def add_bonus(
    enrollment_id: str,
    data: BonusRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Grant bonus sessions and/or bonus weeks."""
    try:
        return await EnrollmentService(db).add_bonus(enrollment_id, data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.get(
    "/{enrollment_id}/summary",
    response_model=AttendanceSummaryResponse,
    summary="Attendance summary",
)
async def get_summary(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AttendanceSummaryResponse:
    """Attendance counts, participation and graduation status."""
    try:
        return await EnrollmentService(db).get_summary(enrollment_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)
