# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Absence request API endpoints.

- POST / - Register a planned absence
- GET / - List absence requests

Students must ask at least SCHEDULING_ABSENCE_LEAD_HOURS ahead. Teachers
and admins may enter absences at any time with ``markedByTeacher``.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_auth
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.domains.absence import AbsenceService
from src.domains.errors import SessionLedgerError
from src.models.absence import AbsenceCreateRequest, AbsenceListResponse, AbsenceResponse
from src.models.common import RequestStatus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=AbsenceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create absence request",
)
async def create_absence(
    data: AbsenceCreateRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AbsenceResponse:
    """Register an approved absence.

    Raises:
        HTTPException: 400 on missing fields or lead-time violation, 403 if
            a student sets markedByTeacher, 404 if the enrollment is missing.
    """
    if data.marked_by_teacher and not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only teachers can enter absences without notice",
        )

    try:
        return await AbsenceService(db).create_absence(data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=AbsenceListResponse,
    summary="List absence requests",
)
async def list_absences(
    student_id: Annotated[str | None, Query(alias="studentId")] = None,
    enrollment_id: Annotated[str | None, Query(alias="enrollmentId")] = None,
    class_id: Annotated[str | None, Query(alias="classId")] = None,
    request_status: Annotated[RequestStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AbsenceListResponse:
    """List absence requests."""
    items, total = await AbsenceService(db).list_absences(
        student_id=student_id,
        enrollment_id=enrollment_id,
        class_id=class_id,
        status=request_status,
        limit=limit,
        offset=offset,
    )
    return AbsenceListResponse(items=items, total=total)
