# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class catalog API schemas."""

from datetime import date, datetime

from pydantic import Field

from src.models.common import CamelModel


class ClassSessionSchema(CamelModel):
    """Weekly meeting slot."""

    day_of_week: int = Field(description="0=Sunday .. 6=Saturday")
    start_time: str = Field(description="HH:MM")
    end_time: str = Field(description="HH:MM")


class ClassCreateRequest(CamelModel):
    """Request to create a class."""

    name: str | None = None
    grade: int | None = Field(default=None, description="Grade 6-12")
    course_id: str | None = None
    max_students: int | None = None
    sessions: list[ClassSessionSchema] | None = None


class ClassUpdateRequest(CamelModel):
    """Partial class update."""

    name: str | None = None
    grade: int | None = None
    course_id: str | None = None
    max_students: int | None = None
    sessions: list[ClassSessionSchema] | None = None
    is_active: bool | None = None


class AddStudentRequest(CamelModel):
    """Request to add a student to a class."""

    student_id: str | None = None


class CancelClassRequest(CamelModel):
    """Request to cancel one occurrence of a class."""

    date: str | None = Field(default=None, description="yyyy-mm-dd or ISO datetime")


class ClassResponse(CamelModel):
    """Class details."""

    id: str
    name: str
    grade: int
    course_id: str | None = None
    max_students: int
    is_active: bool
    sessions: list[ClassSessionSchema]
    student_ids: list[str]
    enrolled_count: int
    cancelled_dates: list[date]
    created_at: datetime
    updated_at: datetime


class ClassListResponse(CamelModel):
    """List of classes."""

    items: list[ClassResponse]
    total: int


class CancellationResponse(CamelModel):
    """Result of cancelling a class occurrence."""

    class_info: ClassResponse
    cancelled_date: date
    attendance_created: int
    absences_created: int
    makeups_created: int
    makeups_removed: int
