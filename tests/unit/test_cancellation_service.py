# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the class cancellation cascade."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from src.domains.absence import AbsenceService
from src.domains.class_ import AlreadyCancelledError, CancellationService, ClassService
from src.domains.class_.cancellation import CANCELLED_REASON
from src.domains.enrollment import EnrollmentService
from src.domains.errors import InternalError, MissingFieldsError
from src.domains.makeup import MakeupService
from src.infrastructure.database.models import (
    AbsenceRequest,
    Attendance,
    ClassCancellation,
    MakeupRequest,
)
from src.models.absence import AbsenceCreateRequest
from src.models.common import AttendanceStatus, RequestStatus
from src.models.makeup import MakeupCreateRequest

TEACHER = "teacher-1"


@pytest.fixture
def service(db) -> CancellationService:
    """Create cancellation service on the test database."""
    return CancellationService(db)


@pytest.fixture
async def roster(db, make_class, make_enrollment):
    """A class with two enrolled students holding active enrollments."""
    class_ = await make_class()
    classes = ClassService(db)
    enrollments = []
    for student in ("student-a", "student-b"):
        enrollments.append(await make_enrollment(student_id=student))
        await classes.add_student(class_.id, student)
    return class_, enrollments


class TestCancelClass:
    """Tests for cancelling one class day."""

    @pytest.mark.asyncio
    async def test_cascade_creates_records(
        self, service, roster, session_day, count_rows
    ) -> None:
        """Each student gets an excused mark, an absence and a placeholder."""
        class_, _ = roster

        result = await service.cancel_class(class_.id, session_day.isoformat(), actor_id=TEACHER)

        assert result.cancelled_date == session_day
        assert result.class_info.cancelled_dates == [session_day]
        assert (result.attendance_created, result.absences_created, result.makeups_created) == (
            2,
            2,
            2,
        )
        assert await count_rows(
            Attendance,
            Attendance.session_date == session_day,
            Attendance.status == AttendanceStatus.EXCUSED.value,
            Attendance.notes == CANCELLED_REASON,
            Attendance.marked_by == TEACHER,
        ) == 2
        assert await count_rows(
            AbsenceRequest,
            AbsenceRequest.status == RequestStatus.APPROVED.value,
            AbsenceRequest.reason == CANCELLED_REASON,
        ) == 2
        assert await count_rows(
            MakeupRequest,
            MakeupRequest.status == RequestStatus.PENDING.value,
            MakeupRequest.new_class_id.is_(None),
            MakeupRequest.new_session_date == session_day + timedelta(days=7),
        ) == 2

    @pytest.mark.asyncio
    async def test_counters_untouched(self, db, service, roster, session_day) -> None:
        """Excused marks do not consume sessions."""
        class_, enrollments = roster

        await service.cancel_class(class_.id, session_day.isoformat())

        for enrollment in enrollments:
            refreshed = await EnrollmentService(db).get_enrollment(enrollment.id)
            assert refreshed.remaining_sessions == 12

    @pytest.mark.asyncio
    async def test_student_with_absence_is_skipped(
        self, db, service, roster, session_day, count_rows
    ) -> None:
        """A student who already reported absent gets nothing new."""
        class_, (first, _) = roster
        await AbsenceService(db).create_absence(
            AbsenceCreateRequest(
                student_id=first.student_id,
                enrollment_id=first.id,
                class_id=class_.id,
                session_date=session_day.isoformat(),
                reason="Sick",
                marked_by_teacher=True,
            )
        )

        result = await service.cancel_class(class_.id, session_day.isoformat())

        assert result.absences_created == 1
        assert await count_rows(
            MakeupRequest, MakeupRequest.student_id == first.student_id
        ) == 0
        assert await count_rows(
            AbsenceRequest, AbsenceRequest.student_id == first.student_id
        ) == 1

    @pytest.mark.asyncio
    async def test_existing_mark_is_not_duplicated(
        self, db, service, roster, session_day, count_rows
    ) -> None:
        """A student already marked that day keeps the one mark."""
        class_, (first, _) = roster
        db.add(
            Attendance(
                student_id=first.student_id,
                enrollment_id=first.id,
                class_id=None,
                session_date=session_day,
                status=AttendanceStatus.PRESENT.value,
                marked_by=TEACHER,
            )
        )
        await db.commit()

        result = await service.cancel_class(class_.id, session_day.isoformat())

        assert result.attendance_created == 1
        assert result.absences_created == 2
        assert await count_rows(Attendance, Attendance.student_id == first.student_id) == 1

    @pytest.mark.asyncio
    async def test_makeups_into_cancelled_day_are_removed(
        self, db, service, make_class, make_enrollment, upcoming_weekday, count_rows
    ) -> None:
        """Approved makeups booked into the cancelled occurrence are deleted."""
        class_ = await make_class()
        enrollment = await make_enrollment()
        day = upcoming_weekday(1, min_days=3)
        await MakeupService(db).create_makeup(
            MakeupCreateRequest(
                student_id=enrollment.student_id,
                enrollment_id=enrollment.id,
                original_session_date="2025-01-06",
                new_class_id=class_.id,
                new_session_date=day.isoformat(),
                reason="Missed class",
            )
        )

        result = await service.cancel_class(class_.id, day.isoformat())

        assert result.makeups_removed == 1
        assert await count_rows(MakeupRequest) == 0

    @pytest.mark.asyncio
    async def test_double_cancel_rejected(
        self, service, roster, session_day, count_rows
    ) -> None:
        """The same day cannot be cancelled twice and nothing is duplicated."""
        class_, _ = roster
        await service.cancel_class(class_.id, session_day.isoformat())

        with pytest.raises(AlreadyCancelledError, match="This date is already cancelled"):
            await service.cancel_class(class_.id, f"{session_day.isoformat()}T10:00:00")

        assert await count_rows(AbsenceRequest) == 2
        assert await count_rows(ClassCancellation) == 1

    @pytest.mark.asyncio
    async def test_missing_date(self, service, roster) -> None:
        """The date is required."""
        class_, _ = roster

        with pytest.raises(MissingFieldsError, match="date"):
            await service.cancel_class(class_.id, None)

    @pytest.mark.asyncio
    async def test_failure_rolls_back_everything(
        self, service, roster, session_day, count_rows, monkeypatch
    ) -> None:
        """A database failure mid-cascade leaves no trace."""
        class_, _ = roster

        async def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(service, "_has_makeup_for", broken)

        with pytest.raises(InternalError, match="Failed to cancel class"):
            await service.cancel_class(class_.id, session_day.isoformat())

        assert await count_rows(ClassCancellation) == 0
        assert await count_rows(Attendance) == 0
        assert await count_rows(AbsenceRequest) == 0
        assert await count_rows(MakeupRequest) == 0
