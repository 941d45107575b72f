# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API schemas.

Required fields on create are optional here so that a missing field is
reported by the service as "Missing required fields" (HTTP 400) rather
than as a schema error.
"""

from datetime import date, datetime

from pydantic import Field

from src.models.common import CamelModel, EnrollmentStatus, PaymentMode


class ScheduleSlot(CamelModel):
    """One weekly slot of an enrollment's schedule."""

    day_of_week: int = Field(description="0=Sunday .. 6=Saturday")
    time_slot: str = Field(description="HH:MM-HH:MM")
    class_id: str | None = None


class EnrollmentCreateRequest(CamelModel):
    """Request to create an enrollment."""

    student_id: str | None = None
    course_id: str | None = None
    frequency: int | None = Field(default=None, description="Sessions per week (1 or 2)")
    start_date: str | None = Field(default=None, description="yyyy-mm-dd or ISO datetime")
    payment_mode: PaymentMode = PaymentMode.DEFAULT
    custom_weeks: int | None = None
    cycle: int | None = None
    schedule: list[ScheduleSlot] | None = None


class EnrollmentUpdateRequest(CamelModel):
    """Partial enrollment update. Omitted fields are left unchanged."""

    frequency: int | None = None
    start_date: str | None = None
    payment_mode: PaymentMode | None = None
    custom_weeks: int | None = None
    cycle: int | None = None
    schedule: list[ScheduleSlot] | None = None
    status: EnrollmentStatus | None = None


class DeferRequest(CamelModel):
    """Request to defer an enrollment."""

    deferral_weeks: int | None = Field(default=None, description="Weeks to defer (1-4)")


class BonusRequest(CamelModel):
    """Request to grant bonus sessions and/or weeks."""

    bonus_sessions: int | None = None
    bonus_weeks: int | None = None


class EnrollmentResponse(CamelModel):
    """Enrollment details."""

    id: str
    student_id: str
    course_id: str
    frequency: int
    start_date: date
    end_date: date
    status: EnrollmentStatus
    payment_mode: PaymentMode
    custom_weeks: int | None = None
    cycle: int | None = None
    total_sessions: int
    completed_sessions: int
    remaining_sessions: int
    deferral_weeks: int
    schedule: list[ScheduleSlot]
    created_at: datetime
    updated_at: datetime


class EnrollmentListResponse(CamelModel):
    """List of enrollments."""

    items: list[EnrollmentResponse]
    total: int


class AttendanceSummaryResponse(CamelModel):
    """Attendance summary for one enrollment."""

    enrollment_id: str
    total_sessions: int
    present: int
    makeup: int
    excused: int
    absent: int
    unexcused_absences: int
    participation_rate: int = Field(description="Percentage of sessions attended")
    current_week: int
    current_session_label: str = Field(
        description='"upcoming", "finished", "w/total" or "n/cycle"'
    )
    study_status: str = Field(description="excellent, good, warning or critical")
    graduation_eligible: bool
    graduation_note: str | None = None
