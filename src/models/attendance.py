# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance API schemas."""

from datetime import date, datetime

from pydantic import Field

from src.models.common import AttendanceStatus, CamelModel


class AttendanceCreateRequest(CamelModel):
    """Request to mark attendance."""

    student_id: str | None = None
    enrollment_id: str | None = None
    class_id: str | None = None
    session_date: str | None = Field(default=None, description="yyyy-mm-dd or ISO datetime")
    status: AttendanceStatus | None = None
    notes: str | None = None
    marked_by: str | None = None


class AttendanceUpdateRequest(CamelModel):
    """Request to change an attendance mark."""

    status: AttendanceStatus | None = None
    notes: str | None = None


class AttendanceResponse(CamelModel):
    """Attendance record."""

    id: str
    student_id: str
    enrollment_id: str
    class_id: str | None = None
    session_date: date
    start_time: str | None = None
    status: AttendanceStatus
    notes: str | None = None
    marked_by: str
    marked_at: datetime


class AttendanceListResponse(CamelModel):
    """List of attendance records."""

    items: list[AttendanceResponse]
    total: int
