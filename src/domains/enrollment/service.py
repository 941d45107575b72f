# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for the session entitlement ledger.

This module provides the EnrollmentService class for:
- Creating enrollments with derived end date and session count
- Partial updates that keep the session counters consistent
- Renewal into a successor enrollment
- Bonus sessions and bonus weeks
- Per-enrollment attendance summaries

Deferral lives in DeferralService (deferral.py) because it back-fills
absence requests.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.calendar import parse_session_day
from src.domains.enrollment import calculator
from src.domains.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    require_fields,
)
from src.domains.transactions import atomic
from src.infrastructure.database.models import (
    OPEN_ENROLLMENT_STATUSES,
    Attendance,
    Enrollment,
)
from src.models.common import AttendanceStatus, EnrollmentStatus, PaymentMode
from src.models.enrollment import (
    AttendanceSummaryResponse,
    BonusRequest,
    EnrollmentCreateRequest,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
    ScheduleSlot,
)
from src.utils.datetime import add_weeks, local_today

logger = logging.getLogger(__name__)

ACTIVE_ENROLLMENT_MESSAGE = "Student already has an active enrollment"


class EnrollmentNotFoundError(NotFoundError):
    """Raised when enrollment is not found."""

    pass


class ActiveEnrollmentExistsError(ConflictError):
    """Raised when the student already has a pending or active enrollment."""

    pass


class InvalidPlanError(ValidationError):
    """Raised when frequency, custom weeks or schedule are invalid."""

    pass


class InvalidBonusError(ValidationError):
    """Raised when neither bonus sessions nor bonus weeks are usable."""

    pass


class EnrollmentService:
    """Service for managing session entitlements.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_enrollment(self, request: EnrollmentCreateRequest) -> EnrollmentResponse:
        """Create a pending enrollment.

        Args:
            request: Enrollment creation data.

        Returns:
            Created enrollment.

        Raises:
            MissingFieldsError: If studentId, courseId, frequency or startDate is missing.
            InvalidPlanError: If frequency, custom weeks or schedule are invalid.
            ActiveEnrollmentExistsError: If the student has a pending/active enrollment.
        """
        require_fields(
            studentId=request.student_id,
            courseId=request.course_id,
            frequency=request.frequency,
            startDate=request.start_date,
        )
        self._validate_plan(request.frequency, request.custom_weeks, request.schedule)

        if await self._find_open_enrollment(request.student_id):
            raise ActiveEnrollmentExistsError(ACTIVE_ENROLLMENT_MESSAGE)

        start_date = parse_session_day(request.start_date, "startDate")
        payment_mode = request.payment_mode.value
        total = calculator.compute_total_sessions(
            request.frequency, payment_mode, request.custom_weeks
        )

        enrollment = Enrollment(
            student_id=request.student_id,
            course_id=request.course_id,
            frequency=request.frequency,
            start_date=start_date,
            end_date=calculator.compute_end_date(
                start_date, request.frequency, payment_mode, request.custom_weeks
            ),
            status=EnrollmentStatus.PENDING.value,
            payment_mode=payment_mode,
            custom_weeks=request.custom_weeks,
            cycle=request.cycle,
            total_sessions=total,
            completed_sessions=0,
            remaining_sessions=total,
            deferral_weeks=0,
            schedule=self._schedule_to_json(request.schedule),
        )

        async with atomic(self.db, conflict=ACTIVE_ENROLLMENT_MESSAGE):
            self.db.add(enrollment)

        logger.info(
            "Created enrollment: %s (student=%s, total=%d, end=%s)",
            enrollment.id,
            enrollment.student_id,
            total,
            enrollment.end_date,
        )

        return self.to_response(enrollment)

    async def list_enrollments(
        self,
        student_id: str | None = None,
        course_id: str | None = None,
        status: EnrollmentStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[EnrollmentResponse], int]:
        """List enrollments with filtering.

        Args:
            student_id: Filter by student.
            course_id: Filter by course.
            status: Filter by status.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of enrollments, total count).
        """
        query = select(Enrollment)

        conditions = []
        if student_id:
            conditions.append(Enrollment.student_id == student_id)
        if course_id:
            conditions.append(Enrollment.course_id == course_id)
        if status:
            conditions.append(Enrollment.status == status.value)

        if conditions:
            query = query.where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Enrollment.start_date.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self.to_response(e) for e in result.scalars().all()], total

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentResponse:
        """Get enrollment by ID.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
        """
        return self.to_response(await self.get_model(enrollment_id))

    async def update_enrollment(
        self,
        enrollment_id: str,
        request: EnrollmentUpdateRequest,
    ) -> EnrollmentResponse:
        """Apply a partial update.

        Changing frequency, start date, payment mode or custom weeks
        recomputes the end date. Changing frequency, payment mode or custom
        weeks also recomputes total_sessions and resets remaining_sessions
        to ``max(0, total - completed)``. completed_sessions is never
        rewritten here.

        Args:
            enrollment_id: Enrollment identifier.
            request: Fields to change.

        Returns:
            Updated enrollment.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            InvalidPlanError: If the new plan is invalid.
            ActiveEnrollmentExistsError: If a status change would open a
                second pending/active enrollment for the student.
        """
        enrollment = await self.get_model(enrollment_id)
        changes = request.model_dump(exclude_unset=True)

        frequency = request.frequency if request.frequency is not None else enrollment.frequency
        payment_mode = (
            request.payment_mode.value
            if request.payment_mode is not None
            else enrollment.payment_mode
        )
        custom_weeks = (
            request.custom_weeks if "custom_weeks" in changes else enrollment.custom_weeks
        )
        self._validate_plan(frequency, custom_weeks, request.schedule)
        start_date = (
            parse_session_day(request.start_date, "startDate")
            if request.start_date is not None
            else enrollment.start_date
        )

        new_status = request.status.value if request.status is not None else None
        if (
            new_status in OPEN_ENROLLMENT_STATUSES
            and not enrollment.is_open
            and await self._find_open_enrollment(enrollment.student_id, exclude_id=enrollment.id)
        ):
            raise ActiveEnrollmentExistsError(ACTIVE_ENROLLMENT_MESSAGE)

        plan_changed = (
            request.frequency is not None
            or request.payment_mode is not None
            or "custom_weeks" in changes
        )

        async with atomic(self.db, conflict=ACTIVE_ENROLLMENT_MESSAGE):
            enrollment.start_date = start_date
            if "cycle" in changes:
                enrollment.cycle = request.cycle
            if request.schedule is not None:
                enrollment.schedule = self._schedule_to_json(request.schedule)
            if new_status is not None:
                enrollment.status = new_status

            if plan_changed or request.start_date is not None:
                enrollment.end_date = calculator.compute_end_date(
                    start_date, frequency, payment_mode, custom_weeks
                )

            if plan_changed:
                enrollment.frequency = frequency
                enrollment.payment_mode = payment_mode
                enrollment.custom_weeks = custom_weeks
                await self._rebalance(
                    enrollment.id,
                    calculator.compute_total_sessions(frequency, payment_mode, custom_weeks),
                )

        if plan_changed:
            enrollment = await self.get_model(enrollment.id)
            if enrollment.total_sessions < enrollment.completed_sessions:
                logger.warning(
                    "Enrollment %s plan shrank below completed sessions (%d < %d)",
                    enrollment.id,
                    enrollment.total_sessions,
                    enrollment.completed_sessions,
                )

        logger.info("Updated enrollment: %s (%s)", enrollment.id, ", ".join(sorted(changes)))

        return self.to_response(enrollment)

    async def renew_enrollment(self, enrollment_id: str) -> EnrollmentResponse:
        """Complete an enrollment and open its successor.

        The successor starts the day after the source's end date and
        inherits frequency, schedule, cycle, payment mode and custom weeks.
        Both writes commit together.

        Args:
            enrollment_id: Enrollment to renew.

        Returns:
            The new pending enrollment.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            ActiveEnrollmentExistsError: If another pending/active enrollment exists.
        """
        source = await self.get_model(enrollment_id)

        if await self._find_open_enrollment(source.student_id, exclude_id=source.id):
            raise ActiveEnrollmentExistsError(ACTIVE_ENROLLMENT_MESSAGE)

        start_date = source.end_date + timedelta(days=1)
        total = calculator.compute_total_sessions(
            source.frequency, source.payment_mode, source.custom_weeks
        )
        successor = Enrollment(
            student_id=source.student_id,
            course_id=source.course_id,
            frequency=source.frequency,
            start_date=start_date,
            end_date=calculator.compute_end_date(
                start_date, source.frequency, source.payment_mode, source.custom_weeks
            ),
            status=EnrollmentStatus.PENDING.value,
            payment_mode=source.payment_mode,
            custom_weeks=source.custom_weeks,
            cycle=source.cycle,
            total_sessions=total,
            completed_sessions=0,
            remaining_sessions=total,
            deferral_weeks=0,
            schedule=list(source.schedule or []),
        )

        async with atomic(self.db, conflict=ACTIVE_ENROLLMENT_MESSAGE):
            source.status = EnrollmentStatus.COMPLETED.value
            # Release the open-enrollment slot before the successor claims it.
            await self.db.flush()
            self.db.add(successor)

        logger.info(
            "Renewed enrollment %s -> %s (start=%s)", source.id, successor.id, start_date
        )

        return self.to_response(successor)

    async def add_bonus(self, enrollment_id: str, request: BonusRequest) -> EnrollmentResponse:
        """Grant bonus sessions and/or bonus weeks.

        Bonus sessions are added to remaining_sessions only. Bonus weeks
        extend end_date and never change session counts.

        Args:
            enrollment_id: Enrollment identifier.
            request: Bonus amounts.

        Returns:
            Updated enrollment.

        Raises:
            InvalidBonusError: If neither amount is a positive number, or either is negative.
            EnrollmentNotFoundError: If enrollment not found.
        """
        sessions = request.bonus_sessions or 0
        weeks = request.bonus_weeks or 0
        if sessions < 0 or weeks < 0 or (sessions == 0 and weeks == 0):
            raise InvalidBonusError("Bonus sessions or weeks must be provided and non-negative")

        enrollment = await self.get_model(enrollment_id)

        values: dict = {"remaining_sessions": Enrollment.remaining_sessions + sessions}
        if weeks:
            values["end_date"] = add_weeks(enrollment.end_date, weeks)

        async with atomic(self.db):
            await self.db.execute(
                update(Enrollment).where(Enrollment.id == enrollment.id).values(**values)
            )
        enrollment = await self.get_model(enrollment.id)

        logger.info(
            "Added bonus to enrollment %s: sessions=%d, weeks=%d", enrollment.id, sessions, weeks
        )

        return self.to_response(enrollment)

    async def get_summary(self, enrollment_id: str) -> AttendanceSummaryResponse:
        """Summarize attendance for an enrollment.

        Args:
            enrollment_id: Enrollment identifier.

        Returns:
            Attendance counts, participation rate and current session label.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
        """
        enrollment = await self.get_model(enrollment_id)

        result = await self.db.execute(
            select(Attendance.status, func.count())
            .where(Attendance.enrollment_id == enrollment.id)
            .group_by(Attendance.status)
        )
        counts = {status: count for status, count in result.all()}
        tally = calculator.AttendanceTally(
            present=counts.get(AttendanceStatus.PRESENT.value, 0),
            makeup=counts.get(AttendanceStatus.MAKEUP.value, 0),
            excused=counts.get(AttendanceStatus.EXCUSED.value, 0),
            absent=counts.get(AttendanceStatus.ABSENT.value, 0),
        )

        total = enrollment.total_sessions
        week = calculator.current_week(enrollment.start_date, local_today())
        eligible, note = tally.graduation_check(total)

        return AttendanceSummaryResponse(
            enrollment_id=enrollment.id,
            total_sessions=total,
            present=tally.present,
            makeup=tally.makeup,
            excused=tally.excused,
            absent=tally.absent,
            unexcused_absences=tally.unexcused_absences(total),
            participation_rate=tally.participation_rate(total),
            current_week=week,
            current_session_label=calculator.session_label(week, total, enrollment.cycle),
            study_status=tally.study_status(total),
            graduation_eligible=eligible,
            graduation_note=note,
        )

    async def get_model(self, enrollment_id: str) -> Enrollment:
        """Get the enrollment row.

        Raises:
            EnrollmentNotFoundError: If not found.
        """
        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .execution_options(populate_existing=True)
        )
        enrollment = result.scalar_one_or_none()

        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")

        return enrollment

    async def _rebalance(self, enrollment_id: str, total_sessions: int) -> None:
        """Set a new total and derive remaining from the stored completed count.

        remaining = max(0, total - completed), evaluated in SQL against the
        stored counter.
        """
        completed = Enrollment.completed_sessions
        await self.db.execute(
            update(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .values(
                total_sessions=total_sessions,
                remaining_sessions=case(
                    (completed < total_sessions, total_sessions - completed),
                    else_=0,
                ),
            )
            .execution_options(synchronize_session=False)
        )

    async def _find_open_enrollment(
        self,
        student_id: str,
        exclude_id: str | None = None,
    ) -> Enrollment | None:
        query = select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.status.in_(OPEN_ENROLLMENT_STATUSES),
        )
        if exclude_id:
            query = query.where(Enrollment.id != exclude_id)

        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    def _validate_plan(
        frequency: int,
        custom_weeks: int | None,
        schedule: list[ScheduleSlot] | None,
    ) -> None:
        if frequency not in (1, 2):
            raise InvalidPlanError("Frequency must be 1 or 2 sessions per week")
        if custom_weeks is not None and custom_weeks <= 0:
            raise InvalidPlanError("Custom weeks must be a positive number")
        for slot in schedule or []:
            if not 0 <= slot.day_of_week <= 6:
                raise InvalidPlanError("Schedule dayOfWeek must be between 0 and 6")

    @staticmethod
    def _schedule_to_json(schedule: list[ScheduleSlot] | None) -> list[dict]:
        return [slot.model_dump() for slot in schedule or []]

    @staticmethod
    def to_response(enrollment: Enrollment) -> EnrollmentResponse:
        """Convert enrollment model to response."""
        return EnrollmentResponse(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            frequency=enrollment.frequency,
            start_date=enrollment.start_date,
            end_date=enrollment.end_date,
            status=EnrollmentStatus(enrollment.status),
            payment_mode=PaymentMode(enrollment.payment_mode),
            custom_weeks=enrollment.custom_weeks,
            cycle=enrollment.cycle,
            total_sessions=enrollment.total_sessions,
            completed_sessions=enrollment.completed_sessions,
            remaining_sessions=enrollment.remaining_sessions,
            deferral_weeks=enrollment.deferral_weeks,
            schedule=[ScheduleSlot.model_validate(slot) for slot in enrollment.schedule or []],
            created_at=enrollment.created_at,
            updated_at=enrollment.updated_at,
        )
