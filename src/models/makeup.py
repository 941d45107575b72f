# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Makeup request API schemas."""

from datetime import date, datetime

from pydantic import Field

from src.models.common import CamelModel, RequestStatus


class MakeupCreateRequest(CamelModel):
    """Request to book a makeup session."""

    student_id: str | None = None
    enrollment_id: str | None = None
    original_class_id: str | None = None
    original_session_date: str | None = None
    new_class_id: str | None = None
    new_session_date: str | None = Field(default=None, description="yyyy-mm-dd or ISO datetime")
    reason: str | None = None


class MakeupChooseSlotRequest(CamelModel):
    """Student's choice of class for a pending makeup placeholder."""

    new_class_id: str | None = None
    new_session_date: str | None = None


class MakeupResponse(CamelModel):
    """Makeup request."""

    id: str
    student_id: str
    enrollment_id: str
    original_class_id: str | None = None
    original_session_date: date
    new_class_id: str | None = None
    new_session_date: date
    new_start_time: str | None = None
    reason: str
    status: RequestStatus
    requested_at: datetime


class MakeupListResponse(CamelModel):
    """List of makeup requests."""

    items: list[MakeupResponse]
    total: int


class AvailableSlot(CamelModel):
    """A class a student could attend as a makeup."""

    class_id: str
    name: str
    grade: int
    course_id: str | None = None
    next_session_date: date
    start_time: str
    end_time: str
    enrolled_count: int
    max_students: int
    available_spots: int


class AvailableSlotsResponse(CamelModel):
    """Makeup options for an enrollment, soonest first."""

    enrollment_id: str
    slots: list[AvailableSlot]
