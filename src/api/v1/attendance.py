# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance API endpoints.

- POST / - Mark attendance (one mark per student per day)
- GET / - List marks with filtering
- GET /{attendance_id} - Get a mark
- PUT /{attendance_id} - Change status or notes
- DELETE /{attendance_id} - Remove a mark

Present and makeup marks consume a session of the owning enrollment;
editing or deleting them returns it.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_auth, require_teacher_or_admin
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.domains.attendance import AttendanceService
from src.domains.errors import SessionLedgerError
from src.models.attendance import (
    AttendanceCreateRequest,
    AttendanceListResponse,
    AttendanceResponse,
    AttendanceUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=AttendanceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record attendance",
)
async def record_attendance(
    data: AttendanceCreateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> AttendanceResponse:
    """Record an attendance mark.

    Raises:
        HTTPException: 400 on missing fields or a duplicate mark for the day,
            404 if the enrollment does not exist.
    """
    try:
        return await AttendanceService(db).record_attendance(data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=AttendanceListResponse,
    summary="List attendance",
)
async def list_attendance(
    student_id: Annotated[str | None, Query(alias="studentId")] = None,
    enrollment_id: Annotated[str | None, Query(alias="enrollmentId")] = None,
    class_id: Annotated[str | None, Query(alias="classId")] = None,
    session_date: Annotated[str | None, Query(alias="sessionDate")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AttendanceListResponse:
    """List attendance marks."""
    try:
        items, total = await AttendanceService(db).list_attendance(
            student_id=student_id,
            enrollment_id=enrollment_id,
            class_id=class_id,
            session_date=session_date,
            limit=limit,
            offset=offset,
        )
    except SessionLedgerError as e:
        raise to_http_exception(e)
    return AttendanceListResponse(items=items, total=total)


@router.get(
    "/{attendance_id}",
    response_model=AttendanceResponse,
    summary="Get attendance",
)
async def get_attendance(
    attendance_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AttendanceResponse:
    """Get an attendance mark."""
    try:
        return await AttendanceService(db).get_attendance(attendance_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.put(
    "/{attendance_id}",
    response_model=AttendanceResponse,
    summary="Update attendance",
)
async def update_attendance(
    attendance_id: str,
    data: AttendanceUpdateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> AttendanceResponse:
    """Change the status or notes of a mark."""
    logger.info("Updating attendance %s by %s", attendance_id, current_user.id)

    try:
        return await AttendanceService(db).update_attendance(attendance_id, data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.delete(
    "/{attendance_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete attendance",
)
async def delete_attendance(
    attendance_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a mark."""
    logger.info("Deleting attendance %s by %s", attendance_id, current_user.id)

    try:
        await AttendanceService(db).delete_attendance(attendance_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)
