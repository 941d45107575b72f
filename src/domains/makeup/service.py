# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Makeup request service.

This module provides the MakeupService class for:
- Booking a makeup session in another class
- Listing classes with free seats for a makeup
- Resolving cancellation placeholders once the student picks a class

A makeup is a one-time attendance grant. It never adds the student to
the target class's member list.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.calendar import parse_session_day, parse_session_moment
from src.domains.class_.service import ClassFullError, ClassNotFoundError, ClassService
from src.domains.enrollment.service import EnrollmentService
from src.domains.errors import (
    LeadTimeError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
    require_fields,
)
from src.domains.transactions import atomic
from src.infrastructure.database.models import Class, MakeupRequest
from src.models.common import RequestStatus
from src.models.makeup import (
    AvailableSlot,
    AvailableSlotsResponse,
    MakeupChooseSlotRequest,
    MakeupCreateRequest,
    MakeupResponse,
)
from src.utils.datetime import (
    at_local_time,
    clock_of,
    days_until,
    local_today,
    next_weekday_on_or_after,
)

logger = logging.getLogger(__name__)


class MakeupNotFoundError(NotFoundError):
    """Raised when makeup request is not found."""

    pass


class MakeupNotPendingError(ValidationError):
    """Raised when a slot is chosen for a makeup that is no longer pending."""

    pass


def next_occurrence(class_: Class, lead_days: int) -> tuple[date, str, str] | None:
    """Earliest session of ``class_`` starting at least ``lead_days`` from now.

    Cancelled dates are skipped.

    Returns:
        (day, start_time, end_time) of the occurrence, or None if the class
        has no sessions.
    """
    today = local_today()
    cancelled = set(class_.cancelled_dates)
    best: tuple[datetime, date, str, str] | None = None

    for session in class_.sessions:
        day = next_weekday_on_or_after(today, session.day_of_week)
        while (
            days_until(at_local_time(day, session.start_time)) < lead_days or day in cancelled
        ):
            day += timedelta(days=7)
        moment = at_local_time(day, session.start_time)
        if best is None or moment < best[0]:
            best = (moment, day, session.start_time, session.end_time)

    if best is None:
        return None
    return best[1], best[2], best[3]


class MakeupService:
    """Service for makeup sessions.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.enrollments = EnrollmentService(db)
        self.classes = ClassService(db)

    async def create_makeup(self, request: MakeupCreateRequest) -> MakeupResponse:
        """Book an approved makeup session.

        Args:
            request: Makeup data.

        Returns:
            Created makeup request.

        Raises:
            MissingFieldsError: If a required field is missing.
            InvalidDateError: If a date cannot be parsed.
            LeadTimeError: If the new session is less than a day away.
            EnrollmentNotFoundError: If enrollment not found.
            ClassNotFoundError: If newClassId does not exist.
            ClassFullError: If the target class has no free seats.
        """
        require_fields(
            studentId=request.student_id,
            enrollmentId=request.enrollment_id,
            originalSessionDate=request.original_session_date,
            newSessionDate=request.new_session_date,
            reason=request.reason,
        )
        original_day = parse_session_day(request.original_session_date, "originalSessionDate")
        moment = parse_session_moment(request.new_session_date, "newSessionDate")
        self._check_lead_time(moment)

        enrollment = await self.enrollments.get_model(request.enrollment_id)
        target = await self._target_class(request.new_class_id)

        makeup = MakeupRequest(
            student_id=request.student_id,
            enrollment_id=enrollment.id,
            original_class_id=request.original_class_id,
            original_session_date=original_day,
            new_class_id=target.id if target else None,
            new_session_date=moment.date(),
            new_start_time=self._start_time(moment, target),
            reason=request.reason,
            status=RequestStatus.APPROVED.value,
        )

        async with atomic(self.db, failure="Failed to create makeup request"):
            self.db.add(makeup)

        logger.info(
            "Created makeup: student=%s, %s -> %s (class=%s)",
            makeup.student_id,
            original_day,
            makeup.new_session_date,
            makeup.new_class_id,
        )

        return self.to_response(makeup)

    async def choose_slot(
        self,
        makeup_id: str,
        request: MakeupChooseSlotRequest,
    ) -> MakeupResponse:
        """Resolve a pending placeholder by picking a class and date.

        Args:
            makeup_id: Makeup request identifier.
            request: Chosen class and date.

        Returns:
            The approved makeup request.

        Raises:
            MakeupNotFoundError: If not found.
            MakeupNotPendingError: If the request is not pending.
            MissingFieldsError: If class or date is missing.
            LeadTimeError: If the chosen session is less than a day away.
            ClassNotFoundError: If the class does not exist.
            ClassFullError: If the class has no free seats.
        """
        makeup = await self.get_model(makeup_id)
        if makeup.status != RequestStatus.PENDING.value:
            raise MakeupNotPendingError("Only pending makeup requests can be rescheduled")

        require_fields(newClassId=request.new_class_id, newSessionDate=request.new_session_date)
        moment = parse_session_moment(request.new_session_date, "newSessionDate")
        self._check_lead_time(moment)
        target = await self._target_class(request.new_class_id)

        async with atomic(self.db, failure="Failed to update makeup request"):
            makeup.new_class_id = target.id
            makeup.new_session_date = moment.date()
            makeup.new_start_time = self._start_time(moment, target)
            makeup.status = RequestStatus.APPROVED.value

        logger.info(
            "Makeup %s scheduled in class %s on %s",
            makeup.id,
            makeup.new_class_id,
            makeup.new_session_date,
        )

        return self.to_response(makeup)

    async def available_slots(self, enrollment_id: str | None) -> AvailableSlotsResponse:
        """Classes the enrollment's student could join for a makeup.

        Only active classes of the same course with a free seat are
        offered, each with its earliest occurrence at least
        SCHEDULING_MAKEUP_LEAD_DAYS away, soonest first.

        Raises:
            MissingFieldsError: If enrollment_id is missing.
            EnrollmentNotFoundError: If enrollment not found.
        """
        if not enrollment_id:
            raise MissingFieldsError(["enrollmentId"])
        enrollment = await self.enrollments.get_model(enrollment_id)
        lead_days = get_settings().scheduling.makeup_lead_days

        result = await self.db.execute(
            select(Class).where(
                Class.is_active.is_(True),
                Class.course_id == enrollment.course_id,
            )
        )

        candidates = []
        for class_ in result.scalars().all():
            free = class_.max_students - len(class_.students)
            if free <= 0:
                continue
            occurrence = next_occurrence(class_, lead_days)
            if occurrence is None:
                continue
            day, start_time, end_time = occurrence
            candidates.append(
                AvailableSlot(
                    class_id=class_.id,
                    name=class_.name,
                    grade=class_.grade,
                    course_id=class_.course_id,
                    next_session_date=day,
                    start_time=start_time,
                    end_time=end_time,
                    enrolled_count=len(class_.students),
                    max_students=class_.max_students,
                    available_spots=free,
                )
            )

        candidates.sort(key=lambda slot: (slot.next_session_date, slot.start_time))

        return AvailableSlotsResponse(enrollment_id=enrollment.id, slots=candidates)

    async def list_makeups(
        self,
        student_id: str | None = None,
        enrollment_id: str | None = None,
        status: RequestStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[MakeupResponse], int]:
        """List makeup requests with filtering.

        Returns:
            Tuple of (list of makeups, total count).
        """
        query = select(MakeupRequest)

        conditions = []
        if student_id:
            conditions.append(MakeupRequest.student_id == student_id)
        if enrollment_id:
            conditions.append(MakeupRequest.enrollment_id == enrollment_id)
        if status:
            conditions.append(MakeupRequest.status == status.value)

        if conditions:
            query = query.where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(MakeupRequest.new_session_date).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self.to_response(m) for m in result.scalars().all()], total

    async def get_model(self, makeup_id: str) -> MakeupRequest:
        """Get the makeup row.

        Raises:
            MakeupNotFoundError: If not found.
        """
        result = await self.db.execute(select(MakeupRequest).where(MakeupRequest.id == makeup_id))
        makeup = result.scalar_one_or_none()

        if not makeup:
            raise MakeupNotFoundError(f"Makeup request {makeup_id} not found")

        return makeup

    async def _target_class(self, class_id: str | None) -> Class | None:
        if not class_id:
            return None
        try:
            class_ = await self.classes.get_model(class_id)
        except ClassNotFoundError:
            raise ClassNotFoundError("New class not found") from None
        if len(class_.students) >= class_.max_students:
            raise ClassFullError("Class is full")
        return class_

    @staticmethod
    def _check_lead_time(moment: datetime) -> None:
        lead_days = get_settings().scheduling.makeup_lead_days
        if days_until(moment) < lead_days:
            raise LeadTimeError(
                f"Makeup request must be made at least {lead_days} day(s) before the new session"
            )

    @staticmethod
    def _start_time(moment: datetime, target: Class | None) -> str | None:
        clock = clock_of(moment)
        if clock is None and target is not None:
            return target.first_start_time
        return clock

    @staticmethod
    def to_response(makeup: MakeupRequest) -> MakeupResponse:
        """Convert makeup model to response."""
        return MakeupResponse(
            id=makeup.id,
            student_id=makeup.student_id,
            enrollment_id=makeup.enrollment_id,
            original_class_id=makeup.original_class_id,
            original_session_date=makeup.original_session_date,
            new_class_id=makeup.new_class_id,
            new_session_date=makeup.new_session_date,
            new_start_time=makeup.new_start_time,
            reason=makeup.reason,
            status=RequestStatus(makeup.status),
            requested_at=makeup.requested_at,
        )
