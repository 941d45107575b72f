# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student enrollment model.

An enrollment is a student's paid entitlement of sessions for one course
over one period. Counters move with attendance; at most one enrollment per
student may be pending or active at any time.
"""

from datetime import date
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Date, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

OPEN_ENROLLMENT_STATUSES = ("pending", "active")

_OPEN_STATUS_PREDICATE = text("status IN ('pending', 'active')")


class Enrollment(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Session entitlement for one student and course.

    Attributes:
        student_id: Owning student (identity service id).
        course_id: Course being taken.
        frequency: Sessions per week (1 or 2).
        start_date: First calendar day of the period.
        end_date: Last calendar day, derived from start_date and the plan.
        status: pending, active, completed, cancelled or deferred.
        payment_mode: default (fixed 12 sessions) or custom (weeks x frequency).
        custom_weeks: Paid weeks when payment_mode is custom.
        cycle: Display cycle used to label the current session.
        total_sessions: Paid session count.
        completed_sessions: Sessions consumed by attendance.
        remaining_sessions: Sessions still available.
        deferral_weeks: Weeks of deferral; 0 until the single deferral is used.
        schedule: Weekly slots as dicts with day_of_week, time_slot, class_id.
    """

    __tablename__ = "enrollments"

    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    payment_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="default")
    custom_weeks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cycle: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    remaining_sessions: Mapped[int] = mapped_column(Integer, nullable=False)
    deferral_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    schedule: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index(
            "uq_enrollments_student_open",
            "student_id",
            unique=True,
            postgresql_where=_OPEN_STATUS_PREDICATE,
            sqlite_where=_OPEN_STATUS_PREDICATE,
        ),
        CheckConstraint("frequency IN (1, 2)", name="ck_enrollments_frequency"),
        CheckConstraint(
            "status IN ('pending', 'active', 'completed', 'cancelled', 'deferred')",
            name="ck_enrollments_status",
        ),
        CheckConstraint(
            "payment_mode IN ('default', 'custom')", name="ck_enrollments_payment_mode"
        ),
    )

    @property
    def is_open(self) -> bool:
        """Whether this enrollment blocks a new one for the same student."""
        return self.status in OPEN_ENROLLMENT_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Enrollment(id={self.id}, student_id={self.student_id}, "
            f"status={self.status}, remaining={self.remaining_sessions})>"
        )
