# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment deferral.

A deferral pauses an enrollment for 1 to N weeks (once per enrollment),
pushes its end date out by the same amount, and pre-approves an absence
for every scheduled session inside the pause window. The status change
and every back-filled absence commit in one transaction.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.enrollment.service import EnrollmentService
from src.domains.errors import ConflictError, ValidationError
from src.domains.transactions import atomic
from src.infrastructure.database.models import AbsenceRequest, Class, Enrollment
from src.models.common import EnrollmentStatus, RequestStatus
from src.models.enrollment import EnrollmentResponse
from src.utils.datetime import add_weeks, js_weekday, local_today

logger = logging.getLogger(__name__)


class InvalidDeferralError(ValidationError):
    """Raised when the deferral length is out of range."""

    pass


class AlreadyDeferredError(ConflictError):
    """Raised when the enrollment has already used its deferral."""

    pass


def deferral_dates(
    window_start: date,
    weeks: int,
    day_of_week: int,
) -> list[date]:
    """Dates falling on ``day_of_week`` within ``weeks`` weeks of ``window_start``.

    Args:
        window_start: First day of the window (inclusive).
        weeks: Window length in weeks.
        day_of_week: 0=Sunday .. 6=Saturday.

    Returns:
        One date per week, all inside [window_start, window_start + weeks*7).
    """
    window_end = add_weeks(window_start, weeks)
    dates = []
    for week in range(weeks):
        week_start = window_start + timedelta(days=week * 7)
        offset = (day_of_week - js_weekday(week_start)) % 7
        day = week_start + timedelta(days=offset)
        if window_start <= day < window_end:
            dates.append(day)
    return dates


class DeferralService:
    """Service for deferring enrollments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.enrollments = EnrollmentService(db)

    async def defer(self, enrollment_id: str, weeks: int | None) -> EnrollmentResponse:
        """Defer an enrollment and back-fill absences for the pause window.

        The window starts at local midnight today and lasts ``weeks`` weeks.
        For each scheduled slot that names a class, an approved absence is
        inserted on every matching day in the window unless one already
        exists for that student, class and day.

        Args:
            enrollment_id: Enrollment identifier.
            weeks: Weeks to defer.

        Returns:
            Updated enrollment.

        Raises:
            InvalidDeferralError: If weeks is missing or out of range.
            EnrollmentNotFoundError: If enrollment not found.
            AlreadyDeferredError: If the enrollment was already deferred.
            InternalError: If the back-fill fails; nothing is persisted.
        """
        max_weeks = get_settings().scheduling.max_deferral_weeks
        if weeks is None or not 1 <= weeks <= max_weeks:
            raise InvalidDeferralError(f"Deferral weeks must be between 1 and {max_weeks}")

        enrollment = await self.enrollments.get_model(enrollment_id)
        if enrollment.deferral_weeks:
            raise AlreadyDeferredError(
                "Student has already deferred this enrollment. "
                "Only one deferral is allowed per enrollment."
            )

        window_start = local_today()
        reason = f"Deferred {weeks} weeks"
        created = 0

        async with atomic(self.db, failure="Failed to defer enrollment"):
            enrollment.status = EnrollmentStatus.DEFERRED.value
            enrollment.deferral_weeks = weeks
            enrollment.end_date = add_weeks(enrollment.end_date, weeks)

            start_times: dict[str, str | None] = {}
            for slot in enrollment.schedule or []:
                class_id = slot.get("class_id")
                if not class_id:
                    continue
                if class_id not in start_times:
                    start_times[class_id] = await self._class_start_time(class_id)

                for day in deferral_dates(window_start, weeks, slot["day_of_week"]):
                    if await self._has_absence(enrollment, class_id, day):
                        continue
                    self.db.add(
                        AbsenceRequest(
                            student_id=enrollment.student_id,
                            enrollment_id=enrollment.id,
                            class_id=class_id,
                            session_date=day,
                            start_time=start_times[class_id],
                            reason=reason,
                            status=RequestStatus.APPROVED.value,
                        )
                    )
                    await self.db.flush()
                    created += 1

        logger.info(
            "Deferred enrollment %s by %d weeks (end=%s, absences=%d)",
            enrollment.id,
            weeks,
            enrollment.end_date,
            created,
        )

        return self.enrollments.to_response(enrollment)

    async def _class_start_time(self, class_id: str) -> str | None:
        result = await self.db.execute(select(Class).where(Class.id == class_id))
        class_ = result.scalar_one_or_none()
        return class_.first_start_time if class_ else None

    async def _has_absence(self, enrollment: Enrollment, class_id: str, day: date) -> bool:
        result = await self.db.execute(
            select(AbsenceRequest.id)
            .where(
                AbsenceRequest.student_id == enrollment.student_id,
                AbsenceRequest.class_id == class_id,
                AbsenceRequest.session_date == day,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
