# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class catalog models.

A class has weekly sessions, a set of enrolled students, and an
append-only list of cancelled calendar days.
"""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from src.utils.datetime import utc_now


class Class(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A teaching group meeting on fixed weekdays."""

    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    course_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sessions: Mapped[list["ClassSession"]] = relationship(
        back_populates="class_",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ClassSession.position",
    )
    students: Mapped[list["ClassStudent"]] = relationship(
        back_populates="class_",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    cancellations: Mapped[list["ClassCancellation"]] = relationship(
        back_populates="class_",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ClassCancellation.cancelled_on",
    )

    __table_args__ = (
        CheckConstraint("grade BETWEEN 6 AND 12", name="ck_classes_grade"),
        CheckConstraint("max_students > 0", name="ck_classes_max_students"),
    )

    @property
    def student_ids(self) -> list[str]:
        return [member.student_id for member in self.students]

    @property
    def cancelled_dates(self) -> list[date]:
        return [c.cancelled_on for c in self.cancellations]

    @property
    def first_start_time(self) -> str | None:
        """Start time of the first configured session, if any."""
        return self.sessions[0].start_time if self.sessions else None

    def __repr__(self) -> str:
        return f"<Class(id={self.id}, name={self.name}, grade={self.grade})>"


class ClassSession(Base, UUIDPrimaryKeyMixin):
    """One weekly meeting slot of a class."""

    __tablename__ = "class_sessions"

    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    class_: Mapped["Class"] = relationship(back_populates="sessions")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_class_sessions_day"),
    )


class ClassStudent(Base):
    """Membership of a student in a class."""

    __tablename__ = "class_students"

    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True
    )
    student_id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    class_: Mapped["Class"] = relationship(back_populates="students")


class ClassCancellation(Base, UUIDPrimaryKeyMixin):
    """A single cancelled occurrence of a class."""

    __tablename__ = "class_cancellations"

    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    cancelled_on: Mapped[date] = mapped_column(Date, nullable=False)
    cancelled_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    class_: Mapped["Class"] = relationship(back_populates="cancellations")

    __table_args__ = (
        UniqueConstraint("class_id", "cancelled_on", name="uq_class_cancellations_class_day"),
    )
