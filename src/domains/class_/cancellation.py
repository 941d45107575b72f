# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class cancellation cascade.

Cancelling one occurrence of a class fans out to every student holding
a pending or active enrollment in it. Students who already filed an
absence for that class and day are left alone; everyone else gets:

1. An excused attendance row, unless they were already marked that day.
2. An approved absence request for the day.
3. A pending makeup placeholder one week later.

Approved makeups that targeted the cancelled occurrence are deleted,
returning the makeup credit. The cancellation marker and the entire
fan-out commit as one transaction.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.calendar import parse_session_day
from src.domains.class_.service import ClassService
from src.domains.errors import ConflictError, require_fields
from src.domains.transactions import atomic
from src.infrastructure.database.models import (
    OPEN_ENROLLMENT_STATUSES,
    AbsenceRequest,
    Attendance,
    ClassCancellation,
    Enrollment,
    MakeupRequest,
)
from src.models.class_ import CancellationResponse
from src.models.common import AttendanceStatus, RequestStatus

logger = logging.getLogger(__name__)

CANCELLED_REASON = "Class cancelled by teacher"
PLACEHOLDER_REASON = "Class cancelled by teacher - waiting for student to choose a makeup class"
ALREADY_CANCELLED_MESSAGE = "This date is already cancelled"


class AlreadyCancelledError(ConflictError):
    """Raised when the class occurrence is already cancelled."""

    pass


class CancellationService:
    """Service that cancels class occurrences and applies the cascade.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.classes = ClassService(db)

    async def cancel_class(
        self,
        class_id: str,
        date_value: str | None,
        actor_id: str | None = None,
    ) -> CancellationResponse:
        """Cancel one calendar day of a class.

        Args:
            class_id: Class identifier.
            date_value: Day to cancel, yyyy-mm-dd or ISO datetime.
            actor_id: Teacher performing the cancellation; recorded as the
                marker of generated attendance rows.

        Returns:
            Updated class with counts of generated and removed records.

        Raises:
            MissingFieldsError: If date is missing.
            ClassNotFoundError: If class not found.
            AlreadyCancelledError: If the day is already cancelled.
            InternalError: If any write fails; nothing is persisted.
        """
        require_fields(date=date_value)
        class_ = await self.classes.get_model(class_id)
        day = parse_session_day(date_value, "date")

        if day in class_.cancelled_dates:
            raise AlreadyCancelledError(ALREADY_CANCELLED_MESSAGE)

        settings = get_settings().scheduling
        start_time = class_.first_start_time or settings.default_class_start
        marked_by = actor_id or settings.system_actor_id
        placeholder_date = day + timedelta(days=settings.makeup_placeholder_offset_days)

        attendance_created = absences_created = makeups_created = 0

        async with atomic(
            self.db, conflict=ALREADY_CANCELLED_MESSAGE, failure="Failed to cancel class"
        ):
            class_.cancellations.append(
                ClassCancellation(cancelled_on=day, cancelled_by=actor_id)
            )
            # Claim the (class, day) marker before fanning out.
            await self.db.flush()

            result = await self.db.execute(
                select(Enrollment).where(
                    Enrollment.student_id.in_(class_.student_ids),
                    Enrollment.status.in_(OPEN_ENROLLMENT_STATUSES),
                )
            )
            for enrollment in result.scalars().all():
                if await self._has_absence(enrollment.student_id, class_.id, day):
                    continue

                if not await self._has_attendance(enrollment.student_id, day):
                    self.db.add(
                        Attendance(
                            student_id=enrollment.student_id,
                            enrollment_id=enrollment.id,
                            class_id=class_.id,
                            session_date=day,
                            start_time=start_time,
                            status=AttendanceStatus.EXCUSED.value,
                            notes=CANCELLED_REASON,
                            marked_by=marked_by,
                        )
                    )
                    attendance_created += 1

                self.db.add(
                    AbsenceRequest(
                        student_id=enrollment.student_id,
                        enrollment_id=enrollment.id,
                        class_id=class_.id,
                        session_date=day,
                        start_time=start_time,
                        reason=CANCELLED_REASON,
                        status=RequestStatus.APPROVED.value,
                    )
                )
                absences_created += 1

                if not await self._has_makeup_for(enrollment.student_id, class_.id, day):
                    self.db.add(
                        MakeupRequest(
                            student_id=enrollment.student_id,
                            enrollment_id=enrollment.id,
                            original_class_id=class_.id,
                            original_session_date=day,
                            new_class_id=None,
                            new_session_date=placeholder_date,
                            new_start_time=start_time,
                            reason=PLACEHOLDER_REASON,
                            status=RequestStatus.PENDING.value,
                        )
                    )
                    makeups_created += 1

                await self.db.flush()

            refunds = await self.db.execute(
                select(MakeupRequest).where(
                    MakeupRequest.new_class_id == class_.id,
                    MakeupRequest.new_session_date == day,
                    MakeupRequest.status == RequestStatus.APPROVED.value,
                )
            )
            makeups_removed = 0
            for makeup in refunds.scalars().all():
                await self.db.delete(makeup)
                makeups_removed += 1

        logger.info(
            "Cancelled class %s on %s: attendance=%d, absences=%d, makeups=%d, refunded=%d",
            class_.id,
            day,
            attendance_created,
            absences_created,
            makeups_created,
            makeups_removed,
        )

        return CancellationResponse(
            class_info=self.classes.to_response(class_),
            cancelled_date=day,
            attendance_created=attendance_created,
            absences_created=absences_created,
            makeups_created=makeups_created,
            makeups_removed=makeups_removed,
        )

    async def _has_absence(self, student_id: str, class_id: str, day: date) -> bool:
        result = await self.db.execute(
            select(AbsenceRequest.id)
            .where(
                AbsenceRequest.student_id == student_id,
                AbsenceRequest.class_id == class_id,
                AbsenceRequest.session_date == day,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _has_attendance(self, student_id: str, day: date) -> bool:
        result = await self.db.execute(
            select(Attendance.id)
            .where(Attendance.student_id == student_id, Attendance.session_date == day)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _has_makeup_for(self, student_id: str, class_id: str, day: date) -> bool:
        result = await self.db.execute(
            select(MakeupRequest.id)
            .where(
                MakeupRequest.student_id == student_id,
                MakeupRequest.original_class_id == class_id,
                MakeupRequest.original_session_date == day,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
