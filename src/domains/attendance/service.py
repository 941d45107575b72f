# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance service.

This module provides the AttendanceService class for:
- Recording one attendance mark per student per calendar day
- Consuming and returning enrollment sessions as marks change

Counted statuses (present, makeup) consume one session of the owning
enrollment. Every counter change is a single ``UPDATE ... SET
completed_sessions = completed_sessions + n`` issued in the same
transaction as the attendance write, so concurrent marks cannot lose
an increment.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.calendar import parse_session_day, parse_session_moment
from src.domains.enrollment.service import EnrollmentService
from src.domains.errors import ConflictError, NotFoundError, require_fields
from src.domains.transactions import atomic
from src.infrastructure.database.models import Attendance, Enrollment
from src.models.attendance import (
    AttendanceCreateRequest,
    AttendanceResponse,
    AttendanceUpdateRequest,
)
from src.models.common import COUNTED_ATTENDANCE, AttendanceStatus
from src.utils.datetime import clock_of

logger = logging.getLogger(__name__)

DUPLICATE_ATTENDANCE_MESSAGE = "Attendance already recorded for this date"


class AttendanceNotFoundError(NotFoundError):
    """Raised when attendance record is not found."""

    pass


class DuplicateAttendanceError(ConflictError):
    """Raised when the student already has a mark for the calendar day."""

    pass


def session_delta(old_status: str | None, new_status: str | None) -> int:
    """Sessions consumed by moving a mark from ``old_status`` to ``new_status``.

    Returns 1 when the mark becomes counted, -1 when it stops being
    counted, 0 otherwise. ``None`` stands for "no mark".
    """
    return int(new_status in COUNTED_ATTENDANCE) - int(old_status in COUNTED_ATTENDANCE)


class AttendanceService:
    """Service for attendance marks and their session accounting.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize attendance service.

        Args:
            db: Async database session.
        """
        self.db = db
        self.enrollments = EnrollmentService(db)

    async def record_attendance(self, request: AttendanceCreateRequest) -> AttendanceResponse:
        """Record an attendance mark.

        Args:
            request: Attendance data.

        Returns:
            Created attendance record.

        Raises:
            MissingFieldsError: If a required field is missing.
            InvalidDateError: If sessionDate cannot be parsed.
            EnrollmentNotFoundError: If enrollment not found.
            DuplicateAttendanceError: If the student already has a mark that day.
        """
        require_fields(
            studentId=request.student_id,
            enrollmentId=request.enrollment_id,
            sessionDate=request.session_date,
            status=request.status,
            markedBy=request.marked_by,
        )
        moment = parse_session_moment(request.session_date, "sessionDate")
        day = moment.date()

        enrollment = await self.enrollments.get_model(request.enrollment_id)

        if await self._find_for_day(request.student_id, day):
            raise DuplicateAttendanceError(DUPLICATE_ATTENDANCE_MESSAGE)

        record = Attendance(
            student_id=request.student_id,
            enrollment_id=enrollment.id,
            class_id=request.class_id,
            session_date=day,
            start_time=clock_of(moment),
            status=request.status.value,
            notes=request.notes,
            marked_by=request.marked_by,
        )

        async with atomic(self.db, conflict=DUPLICATE_ATTENDANCE_MESSAGE):
            self.db.add(record)
            await self._adjust_sessions(enrollment.id, session_delta(None, record.status))

        logger.info(
            "Recorded attendance: student=%s, day=%s, status=%s",
            record.student_id,
            day,
            record.status,
        )

        return self.to_response(record)

    async def list_attendance(
        self,
        student_id: str | None = None,
        enrollment_id: str | None = None,
        class_id: str | None = None,
        session_date: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AttendanceResponse], int]:
        """List attendance with filtering.

        Args:
            student_id: Filter by student.
            enrollment_id: Filter by enrollment.
            class_id: Filter by class.
            session_date: Filter by calendar day.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of records, total count).
        """
        query = select(Attendance)

        conditions = []
        if student_id:
            conditions.append(Attendance.student_id == student_id)
        if enrollment_id:
            conditions.append(Attendance.enrollment_id == enrollment_id)
        if class_id:
            conditions.append(Attendance.class_id == class_id)
        if session_date:
            conditions.append(
                Attendance.session_date == parse_session_day(session_date, "sessionDate")
            )

        if conditions:
            query = query.where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Attendance.session_date.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self.to_response(a) for a in result.scalars().all()], total

    async def get_attendance(self, attendance_id: str) -> AttendanceResponse:
        """Get attendance by ID.

        Raises:
            AttendanceNotFoundError: If not found.
        """
        return self.to_response(await self.get_model(attendance_id))

    async def update_attendance(
        self,
        attendance_id: str,
        request: AttendanceUpdateRequest,
    ) -> AttendanceResponse:
        """Change the status or notes of a mark.

        Moving between counted and uncounted statuses consumes or returns
        one session of the owning enrollment.

        Args:
            attendance_id: Attendance identifier.
            request: Update data.

        Returns:
            Updated attendance record.

        Raises:
            AttendanceNotFoundError: If not found.
        """
        record = await self.get_model(attendance_id)
        changes = request.model_dump(exclude_unset=True)

        old_status = record.status
        new_status = request.status.value if request.status is not None else old_status
        delta = session_delta(old_status, new_status)

        async with atomic(self.db):
            record.status = new_status
            if "notes" in changes:
                record.notes = request.notes
            await self._adjust_sessions(record.enrollment_id, delta)

        if delta:
            logger.info(
                "Attendance %s moved %s -> %s (session delta %+d)",
                record.id,
                old_status,
                new_status,
                delta,
            )

        return self.to_response(record)

    async def delete_attendance(self, attendance_id: str) -> None:
        """Delete a mark, returning its session if it was counted.

        Raises:
            AttendanceNotFoundError: If not found.
        """
        record = await self.get_model(attendance_id)
        delta = session_delta(record.status, None)

        async with atomic(self.db):
            await self.db.delete(record)
            await self._adjust_sessions(record.enrollment_id, delta)

        logger.info("Deleted attendance %s (session delta %+d)", attendance_id, delta)

    async def get_model(self, attendance_id: str) -> Attendance:
        """Get the attendance row.

        Raises:
            AttendanceNotFoundError: If not found.
        """
        result = await self.db.execute(select(Attendance).where(Attendance.id == attendance_id))
        record = result.scalar_one_or_none()

        if not record:
            raise AttendanceNotFoundError(f"Attendance {attendance_id} not found")

        return record

    async def _find_for_day(self, student_id: str, day: date) -> Attendance | None:
        result = await self.db.execute(
            select(Attendance)
            .where(Attendance.student_id == student_id, Attendance.session_date == day)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _adjust_sessions(self, enrollment_id: str, delta: int) -> None:
        if not delta:
            return
        await self.db.execute(
            update(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .values(
                completed_sessions=Enrollment.completed_sessions + delta,
                remaining_sessions=Enrollment.remaining_sessions - delta,
            )
        )

    @staticmethod
    def to_response(record: Attendance) -> AttendanceResponse:
        """Convert attendance model to response."""
        return AttendanceResponse(
            id=record.id,
            student_id=record.student_id,
            enrollment_id=record.enrollment_id,
            class_id=record.class_id,
            session_date=record.session_date,
            start_time=record.start_time,
            status=AttendanceStatus(record.status),
            notes=record.notes,
            marked_by=record.marked_by,
            marked_at=record.marked_at,
        )
