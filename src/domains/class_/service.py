# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for managing the class catalog.

This module provides the ClassService class for:
- Class CRUD operations with weekly session validation
- Same-grade weekly overlap detection
- Student membership (adding a student activates their pending enrollment)
- Class activation/deactivation
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.errors import ConflictError, NotFoundError, ValidationError, require_fields
from src.domains.transactions import atomic
from src.infrastructure.database.models import Class, ClassSession, ClassStudent, Enrollment
from src.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassSessionSchema,
    ClassUpdateRequest,
)
from src.models.common import EnrollmentStatus
from src.utils.datetime import clock_minutes, is_valid_clock

logger = logging.getLogger(__name__)

MIN_GRADE = 6
MAX_GRADE = 12


class ClassNotFoundError(NotFoundError):
    """Raised when class is not found."""

    pass


class InvalidClassError(ValidationError):
    """Raised when class fields or sessions are invalid."""

    pass


class ScheduleConflictError(ValidationError):
    """Raised when a session overlaps another class of the same grade."""

    pass


class AlreadyInClassError(ConflictError):
    """Raised when student is already a member of the class."""

    pass


class StudentNotInClassError(NotFoundError):
    """Raised when student is not a member of the class."""

    pass


class ClassFullError(ConflictError):
    """Raised when the class has no free seats."""

    pass


def sessions_overlap(first: ClassSessionSchema, second: ClassSessionSchema) -> bool:
    """Whether two weekly sessions share a weekday and overlapping time range."""
    if first.day_of_week != second.day_of_week:
        return False
    return clock_minutes(first.start_time) < clock_minutes(second.end_time) and clock_minutes(
        second.start_time
    ) < clock_minutes(first.end_time)


class ClassService:
    """Service for managing classes.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize class service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_class(self, request: ClassCreateRequest) -> ClassResponse:
        """Create a new class.

        Args:
            request: Class creation data.

        Returns:
            Created class response.

        Raises:
            MissingFieldsError: If name, grade or sessions are missing.
            InvalidClassError: If grade or sessions are invalid.
            ScheduleConflictError: If a session overlaps an active class of the same grade.
        """
        require_fields(name=request.name, grade=request.grade)
        if not request.sessions:
            raise InvalidClassError("Missing required fields: name, grade, and at least one session")

        self._validate_grade(request.grade)
        self._validate_sessions(request.sessions)
        await self._check_conflicts(request.grade, request.sessions)

        max_students = request.max_students or get_settings().scheduling.default_max_students
        if max_students <= 0:
            raise InvalidClassError("maxStudents must be positive")

        class_ = Class(
            name=request.name.strip(),
            grade=request.grade,
            course_id=request.course_id,
            max_students=max_students,
            is_active=True,
            sessions=self._build_sessions(request.sessions),
            students=[],
            cancellations=[],
        )

        async with atomic(self.db):
            self.db.add(class_)

        logger.info("Created class: %s (%s), grade %d", class_.name, class_.id, class_.grade)

        return self.to_response(class_)

    async def list_classes(
        self,
        grade: int | None = None,
        is_active: bool | None = None,
        course_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ClassResponse], int]:
        """List classes with filtering.

        Args:
            grade: Filter by grade.
            is_active: Filter by active status.
            course_id: Filter by course.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of classes, total count).
        """
        query = select(Class)

        conditions = []
        if grade is not None:
            conditions.append(Class.grade == grade)
        if is_active is not None:
            conditions.append(Class.is_active == is_active)
        if course_id:
            conditions.append(Class.course_id == course_id)

        if conditions:
            query = query.where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Class.grade, Class.name).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self.to_response(c) for c in result.scalars().all()], total

    async def get_class(self, class_id: str) -> ClassResponse:
        """Get class by ID.

        Raises:
            ClassNotFoundError: If class not found.
        """
        return self.to_response(await self.get_model(class_id))

    async def update_class(self, class_id: str, request: ClassUpdateRequest) -> ClassResponse:
        """Update a class.

        Replacing sessions or moving grade re-runs the overlap check
        against other active classes.

        Args:
            class_id: Class identifier.
            request: Update data.

        Returns:
            Updated class.

        Raises:
            ClassNotFoundError: If class not found.
            InvalidClassError: If new values are invalid.
            ScheduleConflictError: If new sessions overlap another class.
        """
        class_ = await self.get_model(class_id)
        changes = request.model_dump(exclude_unset=True)

        if request.name is not None and not request.name.strip():
            raise InvalidClassError("Class name is required")
        if request.grade is not None:
            self._validate_grade(request.grade)
        if request.sessions is not None:
            if not request.sessions:
                raise InvalidClassError("At least one session is required")
            self._validate_sessions(request.sessions)
        if request.max_students is not None and request.max_students <= 0:
            raise InvalidClassError("maxStudents must be positive")
        if request.max_students is not None and request.max_students < len(class_.students):
            raise InvalidClassError("maxStudents cannot be lower than the enrolled count")

        if request.grade is not None or request.sessions is not None:
            await self._check_conflicts(
                request.grade if request.grade is not None else class_.grade,
                request.sessions
                if request.sessions is not None
                else [self._session_schema(s) for s in class_.sessions],
                exclude_id=class_.id,
            )

        async with atomic(self.db):
            if request.name is not None:
                class_.name = request.name.strip()
            if request.grade is not None:
                class_.grade = request.grade
            if "course_id" in changes:
                class_.course_id = request.course_id
            if request.max_students is not None:
                class_.max_students = request.max_students
            if request.is_active is not None:
                class_.is_active = request.is_active
            if request.sessions is not None:
                class_.sessions = self._build_sessions(request.sessions)

        logger.info("Updated class: %s (%s)", class_id, ", ".join(sorted(changes)))

        return self.to_response(class_)

    async def deactivate_class(self, class_id: str) -> None:
        """Deactivate a class; its history is kept.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_ = await self.get_model(class_id)

        async with atomic(self.db):
            class_.is_active = False

        logger.info("Deactivated class: %s", class_id)

    async def add_student(self, class_id: str, student_id: str | None) -> ClassResponse:
        """Add a student to a class and activate their pending enrollment.

        Args:
            class_id: Class identifier.
            student_id: Student to add.

        Returns:
            Updated class.

        Raises:
            MissingFieldsError: If student_id is missing.
            ClassNotFoundError: If class not found.
            AlreadyInClassError: If the student is already a member.
            ClassFullError: If the class is at capacity.
        """
        require_fields(studentId=student_id)
        class_ = await self.get_model(class_id)

        if student_id in class_.student_ids:
            raise AlreadyInClassError("Student is already enrolled in this class")
        if len(class_.students) >= class_.max_students:
            raise ClassFullError(f"Class {class_.name} is full ({class_.max_students} students)")

        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.status == EnrollmentStatus.PENDING.value,
            )
        )
        pending = result.scalar_one_or_none()

        async with atomic(self.db, conflict="Student is already enrolled in this class"):
            class_.students.append(ClassStudent(student_id=student_id))
            if pending:
                pending.status = EnrollmentStatus.ACTIVE.value

        logger.info(
            "Added student %s to class %s (activated enrollment=%s)",
            student_id,
            class_id,
            pending.id if pending else None,
        )

        return self.to_response(class_)

    async def remove_student(self, class_id: str, student_id: str) -> ClassResponse:
        """Remove a student from a class.

        Raises:
            ClassNotFoundError: If class not found.
            StudentNotInClassError: If the student is not a member.
        """
        class_ = await self.get_model(class_id)

        member = next((m for m in class_.students if m.student_id == student_id), None)
        if member is None:
            raise StudentNotInClassError("Student is not enrolled in this class")

        async with atomic(self.db):
            class_.students.remove(member)

        logger.info("Removed student %s from class %s", student_id, class_id)

        return self.to_response(class_)

    async def get_model(self, class_id: str) -> Class:
        """Get the class row with sessions, members and cancellations loaded.

        Raises:
            ClassNotFoundError: If not found.
        """
        result = await self.db.execute(select(Class).where(Class.id == class_id))
        class_ = result.scalar_one_or_none()

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_

    async def _check_conflicts(
        self,
        grade: int,
        sessions: list[ClassSessionSchema],
        exclude_id: str | None = None,
    ) -> None:
        query = select(Class).where(Class.is_active.is_(True), Class.grade == grade)
        if exclude_id:
            query = query.where(Class.id != exclude_id)

        result = await self.db.execute(query)
        for existing in result.scalars().all():
            for existing_session in existing.sessions:
                existing_schema = self._session_schema(existing_session)
                for new_session in sessions:
                    if sessions_overlap(existing_schema, new_session):
                        raise ScheduleConflictError(
                            f'Class overlaps with "{existing.name}" '
                            f"({existing_session.start_time} - {existing_session.end_time})"
                        )

    @staticmethod
    def _validate_grade(grade: int) -> None:
        if not MIN_GRADE <= grade <= MAX_GRADE:
            raise InvalidClassError(f"Grade must be between {MIN_GRADE} and {MAX_GRADE}")

    @staticmethod
    def _validate_sessions(sessions: list[ClassSessionSchema]) -> None:
        for session in sessions:
            if not 0 <= session.day_of_week <= 6:
                raise InvalidClassError(
                    "Day of week must be between 0 (Sunday) and 6 (Saturday)"
                )
            if not is_valid_clock(session.start_time) or not is_valid_clock(session.end_time):
                raise InvalidClassError("Time must be in HH:mm format")
            if clock_minutes(session.end_time) <= clock_minutes(session.start_time):
                raise InvalidClassError("End time must be after start time")

        for i, first in enumerate(sessions):
            for second in sessions[i + 1 :]:
                if sessions_overlap(first, second):
                    raise InvalidClassError("Sessions cannot overlap on the same day")

    @staticmethod
    def _build_sessions(sessions: list[ClassSessionSchema]) -> list[ClassSession]:
        return [
            ClassSession(
                position=position,
                day_of_week=s.day_of_week,
                start_time=s.start_time.strip().zfill(5),
                end_time=s.end_time.strip().zfill(5),
            )
            for position, s in enumerate(sessions)
        ]

    @staticmethod
    def _session_schema(session: ClassSession) -> ClassSessionSchema:
        return ClassSessionSchema(
            day_of_week=session.day_of_week,
            start_time=session.start_time,
            end_time=session.end_time,
        )

    @classmethod
    def to_response(cls, class_: Class) -> ClassResponse:
        """Convert class model to response."""
        return ClassResponse(
            id=class_.id,
            name=class_.name,
            grade=class_.grade,
            course_id=class_.course_id,
            max_students=class_.max_students,
            is_active=class_.is_active,
            sessions=[cls._session_schema(s) for s in class_.sessions],
            student_ids=class_.student_ids,
            enrolled_count=len(class_.students),
            cancelled_dates=class_.cancelled_dates,
            created_at=class_.created_at,
            updated_at=class_.updated_at,
        )
