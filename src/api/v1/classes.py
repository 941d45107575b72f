# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class management API endpoints.

This module provides endpoints for the class catalog:
- POST / - Create a new class
- GET / - List classes with filtering
- GET /{class_id} - Get class details
- PUT /{class_id} - Update class
- DELETE /{class_id} - Deactivate class

Membership endpoints:
- POST /{class_id}/students - Add a student (activates their pending enrollment)
- DELETE /{class_id}/students/{student_id} - Remove a student

Cancellation:
- POST /{class_id}/cancel - Cancel one day and apply the cascade

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
from src.domains.class_ import CancellationService, ClassService
from src.domains.errors import SessionLedgerError
from src.models.class_ import (
    AddStudentRequest,
    CancelClassRequest,
    CancellationResponse,
    ClassCreateRequest,
    ClassListResponse,
    ClassResponse,
    ClassUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> ClassService:
    """Get class service instance."""
    return ClassService(db=db)


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
    description="Create a class. Sessions may not overlap another active class of the same grade.",
)
async def create_class(
    data: ClassCreateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    """Create a new class.

    Raises:
        HTTPException: 400 on missing fields, invalid sessions or a schedule overlap.
    """
    logger.info("Creating class: %s (grade %s) by %s", data.name, data.grade, current_user.id)

    try:
        return await _get_service(db).create_class(data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=ClassListResponse,
    summary="List classes",
)
async def list_classes(
    grade: Annotated[int | None, Query(description="Filter by grade")] = None,
    is_active: Annotated[bool | None, Query(alias="isActive")] = None,
    course_id: Annotated[str | None, Query(alias="courseId")] = None,
    limit: Annotated[int, Query(ge=1, le=500, description="Maximum results")] = 100,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ClassListResponse:
    """List classes with filtering."""
    items, total = await _get_service(db).list_classes(
        grade=grade,
        is_active=is_active,
        course_id=course_id,
        limit=limit,
        offset=offset,
    )
    return ClassListResponse(items=items, total=total)


@router.get(
    "/{class_id}",
    response_model=ClassResponse,
    summary="Get class",
)
async def get_class(
    class_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    """Get class details.

    Raises:
        HTTPException: 404 if the class does not exist.
    """
    try:
        return await _get_service(db).get_class(class_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.put(
    "/{class_id}",
    response_model=ClassResponse,
    summary="Update class",
)
async def update_class(
    class_id: str,
    data: ClassUpdateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    """Update class information."""
    logger.info("Updating class: %s by %s", class_id, current_user.id)

    try:
        return await _get_service(db).update_class(class_id, data)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.delete(
    "/{class_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate class",
)
async def deactivate_class(
    class_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Deactivate a class. Attendance and request history is kept."""
    logger.info("Deactivating class: %s by %s", class_id, current_user.id)

    try:
        await _get_service(db).deactivate_class(class_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.post(
    "/{class_id}/students",
    response_model=ClassResponse,
    summary="Add student",
)
async def add_student(
    class_id: str,
    data: AddStudentRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    """Add a student to a class.

    Raises:
        HTTPException: 400 if already a member or the class is full,
            404 if the class does not exist.
    """
    logger.info("Adding student %s to class %s by %s", data.student_id, class_id, current_user.id)

    try:
        return await _get_service(db).add_student(class_id, data.student_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.delete(
    "/{class_id}/students/{student_id}",
    response_model=ClassResponse,
    summary="Remove student",
)
async def remove_student(
    class_id: str,
    student_id: str,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    """Remove a student from a class."""
    logger.info("Removing student %s from class %s by %s", student_id, class_id, current_user.id)

    try:
        return await _get_service(db).remove_student(class_id, student_id)
    except SessionLedgerError as e:
        raise to_http_exception(e)


@router.post(
    "/{class_id}/cancel",
    response_model=CancellationResponse,
    summary="Cancel class day",
    description="Cancel one day of a class. Enrolled students get an excused mark, "
    "an approved absence and a pending makeup placeholder.",
)
@limiter.limit(RATE_LIMIT_CASCADE)
async def cancel_class(
    request: Request,
    class_id: str,
    data: CancelClassRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> CancellationResponse:
    """Cancel a class occurrence.

    Raises:
        HTTPException: 400 if the date is missing or already cancelled,
            404 if the class does not exist, 500 if the cascade failed.
    """
    logger.info("Cancelling class %s on %s by %s", class_id, data.date, current_user.id)

    try:
        return await CancellationService(db).cancel_class(
            class_id,
            data.date,
            actor_id=current_user.id,
        )
    except SessionLedgerError as e:
        raise to_http_exception(e)
