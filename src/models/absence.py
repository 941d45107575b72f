# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Absence request API schemas."""

from datetime import date, datetime

from pydantic import Field

from src.models.common import CamelModel, RequestStatus


class AbsenceCreateRequest(CamelModel):
    """Request to register a planned absence."""

    student_id: str | None = None
    enrollment_id: str | None = None
    class_id: str | None = None
    session_date: str | None = Field(default=None, description="yyyy-mm-dd or ISO datetime")
    reason: str | None = None
    marked_by_teacher: bool = Field(
        default=False,
        description="Teacher-entered absences skip the lead-time check",
    )


class AbsenceResponse(CamelModel):
    """Absence request."""

    id: str
    student_id: str
    enrollment_id: str
    class_id: str | None = None
    session_date: date
    start_time: str | None = None
    reason: str
    status: RequestStatus
    requested_at: datetime


class AbsenceListResponse(CamelModel):
    """List of absence requests."""

    items: list[AbsenceResponse]
    total: int
