# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Absence request service.

Absences are approved on creation; there is no review step. Every new
absence also marks the day as excused in the attendance ledger unless
the student already has a mark for that day.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.calendar import parse_session_moment
from src.domains.enrollment.service import EnrollmentService
from src.domains.errors import LeadTimeError, require_fields
from src.domains.transactions import atomic
from src.infrastructure.database.models import AbsenceRequest, Attendance
from src.models.absence import AbsenceCreateRequest, AbsenceResponse
from src.models.common import AttendanceStatus, RequestStatus
from src.utils.datetime import clock_of, hours_until

logger = logging.getLogger(__name__)


class AbsenceService:
    """Service for planned absences.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.enrollments = EnrollmentService(db)

    async def create_absence(self, request: AbsenceCreateRequest) -> AbsenceResponse:
        """Register an approved absence and its companion excused mark.

        Students must ask at least SCHEDULING_ABSENCE_LEAD_HOURS before the
        session; teacher-entered absences skip that check.

        Args:
            request: Absence data.

        Returns:
            Created absence request.

        Raises:
            MissingFieldsError: If a required field is missing.
            InvalidDateError: If sessionDate cannot be parsed.
            LeadTimeError: If the session is too close.
            EnrollmentNotFoundError: If enrollment not found.
        """
        require_fields(
            studentId=request.student_id,
            enrollmentId=request.enrollment_id,
            sessionDate=request.session_date,
            reason=request.reason,
        )
        moment = parse_session_moment(request.session_date, "sessionDate")
        day = moment.date()

        lead_hours = get_settings().scheduling.absence_lead_hours
        if not request.marked_by_teacher and hours_until(moment) < lead_hours:
            raise LeadTimeError(
                f"Absence requests must be made at least {lead_hours} hours before the session"
            )

        enrollment = await self.enrollments.get_model(request.enrollment_id)

        existing = await self.db.execute(
            select(Attendance.id)
            .where(Attendance.student_id == request.student_id, Attendance.session_date == day)
            .limit(1)
        )
        has_mark = existing.scalar_one_or_none() is not None

        absence = AbsenceRequest(
            student_id=request.student_id,
            enrollment_id=enrollment.id,
            class_id=request.class_id,
            session_date=day,
            start_time=clock_of(moment),
            reason=request.reason,
            status=RequestStatus.APPROVED.value,
        )

        async with atomic(self.db, failure="Failed to create absence request"):
            self.db.add(absence)
            if not has_mark:
                self.db.add(
                    Attendance(
                        student_id=request.student_id,
                        enrollment_id=enrollment.id,
                        class_id=request.class_id,
                        session_date=day,
                        start_time=absence.start_time,
                        status=AttendanceStatus.EXCUSED.value,
                        notes=request.reason,
                        marked_by=request.student_id,
                    )
                )

        logger.info(
            "Created absence: student=%s, day=%s, teacher=%s, excused_mark=%s",
            absence.student_id,
            day,
            request.marked_by_teacher,
            not has_mark,
        )

        return self.to_response(absence)

    async def list_absences(
        self,
        student_id: str | None = None,
        enrollment_id: str | None = None,
        class_id: str | None = None,
        status: RequestStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AbsenceResponse], int]:
        """List absence requests with filtering.

        Returns:
            Tuple of (list of absences, total count).
        """
        query = select(AbsenceRequest)

        conditions = []
        if student_id:
            conditions.append(AbsenceRequest.student_id == student_id)
        if enrollment_id:
            conditions.append(AbsenceRequest.enrollment_id == enrollment_id)
        if class_id:
            conditions.append(AbsenceRequest.class_id == class_id)
        if status:
            conditions.append(AbsenceRequest.status == status.value)

        if conditions:
            query = query.where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(AbsenceRequest.session_date.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self.to_response(a) for a in result.scalars().all()], total

    @staticmethod
    def to_response(absence: AbsenceRequest) -> AbsenceResponse:
        """Convert absence model to response."""
        return AbsenceResponse(
            id=absence.id,
            student_id=absence.student_id,
            enrollment_id=absence.enrollment_id,
            class_id=absence.class_id,
            session_date=absence.session_date,
            start_time=absence.start_time,
            reason=absence.reason,
            status=RequestStatus(absence.status),
            requested_at=absence.requested_at,
        )
