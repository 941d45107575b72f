# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance, absence request and makeup request models.

Session days are calendar dates in the school timezone. Optional
start times are kept as HH:MM strings next to the day.
"""

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now


class Attendance(Base, UUIDPrimaryKeyMixin):
    """Attendance mark for one student on one calendar day."""

    __tablename__ = "attendance"

    student_id: Mapped[str] = mapped_column(String(36), nullable=False)
    enrollment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    marked_by: Mapped[str] = mapped_column(String(36), nullable=False)
    marked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("student_id", "session_date", name="uq_attendance_student_day"),
        CheckConstraint(
            "status IN ('present', 'excused', 'makeup', 'absent')",
            name="ck_attendance_status",
        ),
    )


class AbsenceRequest(Base, UUIDPrimaryKeyMixin):
    """Planned absence for one session."""

    __tablename__ = "absence_requests"

    student_id: Mapped[str] = mapped_column(String(36), nullable=False)
    enrollment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="approved")
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("ix_absence_requests_student_day", "student_id", "session_date"),
    )


class MakeupRequest(Base, UUIDPrimaryKeyMixin):
    """Replacement session for a missed or cancelled one.

    Cancellation-induced placeholders stay ``pending`` with no target
    class until the student picks one.
    """

    __tablename__ = "makeup_requests"

    student_id: Mapped[str] = mapped_column(String(36), nullable=False)
    enrollment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_class_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    original_session_date: Mapped[date] = mapped_column(Date, nullable=False)
    new_class_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    new_session_date: Mapped[date] = mapped_column(Date, nullable=False)
    new_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="approved")
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("ix_makeup_requests_student_original", "student_id", "original_session_date"),
        Index("ix_makeup_requests_target", "new_class_id", "new_session_date"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_makeup_requests_status"
        ),
    )
