# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Makeup request API endpoints.

- POST / - Book a makeup session
- GET / - List makeup requests
- GET /available - Classes with free seats for an enrollment's makeup
- PUT /{makeup_id} - Pick a class for a pending cancellation placeholder
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_auth
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.domains.errors import SessionLedgerError
from src.domains.makeup import MakeupService
from src.models.common import RequestStatus
from src.models.makeup import (
    AvailableSlotsResponse,
    MakeupChooseSlotRequest,
    MakeupCreateRequest,
    MakeupListResponse,
    MakeupResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=MakeupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create makeup request",
)
async def create_makeup(
    data: MakeupCreateRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> MakeupResponse:
    """Book an approved makeup session.

    Raises:
        HTTPException: 400 on missing fields, lead-time violation or a full
            class, 404 if the enrollment or target class is missing.
    """
    try:
        return await MakeupService(db).create_makeup(data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=MakeupListResponse,
    summary="List makeup requests",
)
async def list_makeups(
    student_id: Annotated[str | None, Query(alias="studentId")] = None,
    enrollment_id: Annotated[str | None, Query(alias="enrollmentId")] = None,
    request_status: Annotated[RequestStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> MakeupListResponse:
    """List makeup requests."""
    items, total = await MakeupService(db).list_makeups(
        student_id=student_id,
        enrollment_id=enrollment_id,
        status=request_status,
        limit=limit,
        offset=offset,
    )
    return MakeupListResponse(items=items, total=total)


@router.get(
    "/available",
    response_model=AvailableSlotsResponse,
    summary="Available makeup classes",
)
async def available_slots(
    enrollment_id: Annotated[str | None, Query(alias="enrollmentId")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AvailableSlotsResponse:
    """Active classes of the same course with a free seat, soonest first."""
    try:
        return await MakeupService(db).available_slots(enrollment_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.put(
    "/{makeup_id}",
    response_model=MakeupResponse,
    summary="Choose makeup class",
)
async def choose_slot(
    makeup_id: str,
    data: MakeupChooseSlotRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> MakeupResponse:
    """Resolve a pending placeholder by picking a class and date."""
    logger.info("Choosing makeup slot for %s by %s", makeup_id, current_user.id)

    try:
        return await MakeupService(db).choose_slot(makeup_id, data)
    except SessionLedgerError as e:
        raise to_http_exception(e)
