# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial session ledger schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-06
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_STATUS_PREDICATE = sa.text("status IN ('pending', 'active')")


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create ledger tables."""
    # =========================================================================
    # ENROLLMENTS
    # =========================================================================

    op.create_table(
        "enrollments",
        _id_column(),
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column("course_id", sa.String(64), nullable=False),
        sa.Column("frequency", sa.Integer, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_mode", sa.String(16), nullable=False, server_default="default"),
        sa.Column("custom_weeks", sa.Integer, nullable=True),
        sa.Column("cycle", sa.Integer, nullable=True),
        sa.Column("total_sessions", sa.Integer, nullable=False),
        sa.Column("completed_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("remaining_sessions", sa.Integer, nullable=False),
        sa.Column("deferral_weeks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("schedule", sa.JSON, nullable=False),
        *_timestamps(),
        sa.CheckConstraint("frequency IN (1, 2)", name="ck_enrollments_frequency"),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'completed', 'cancelled', 'deferred')",
            name="ck_enrollments_status",
        ),
        sa.CheckConstraint(
            "payment_mode IN ('default', 'custom')", name="ck_enrollments_payment_mode"
        ),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index(
        "uq_enrollments_student_open",
        "enrollments",
        ["student_id"],
        unique=True,
        postgresql_where=OPEN_STATUS_PREDICATE,
        sqlite_where=OPEN_STATUS_PREDICATE,
    )

    # =========================================================================
    # CLASS CATALOG
    # =========================================================================

    op.create_table(
        "classes",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("grade", sa.Integer, nullable=False),
        sa.Column("course_id", sa.String(64), nullable=True),
        sa.Column("max_students", sa.Integer, nullable=False, server_default="20"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("grade BETWEEN 6 AND 12", name="ck_classes_grade"),
        sa.CheckConstraint("max_students > 0", name="ck_classes_max_students"),
    )
    op.create_index("ix_classes_grade", "classes", ["grade"])
    op.create_index("ix_classes_course_id", "classes", ["course_id"])

    op.create_table(
        "class_sessions",
        _id_column(),
        sa.Column(
            "class_id",
            sa.String(36),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("day_of_week", sa.Integer, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_class_sessions_day"),
    )
    op.create_index("ix_class_sessions_class_id", "class_sessions", ["class_id"])

    op.create_table(
        "class_students",
        sa.Column(
            "class_id",
            sa.String(36),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("student_id", sa.String(36), primary_key=True),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_class_students_student_id", "class_students", ["student_id"])

    op.create_table(
        "class_cancellations",
        _id_column(),
        sa.Column(
            "class_id",
            sa.String(36),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("cancelled_on", sa.Date, nullable=False),
        sa.Column("cancelled_by", sa.String(36), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "class_id", "cancelled_on", name="uq_class_cancellations_class_day"
        ),
    )

    # =========================================================================
    # SESSION RECORDS
    # =========================================================================

    op.create_table(
        "attendance",
        _id_column(),
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column(
            "enrollment_id",
            sa.String(36),
            sa.ForeignKey("enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("class_id", sa.String(36), nullable=True),
        sa.Column("session_date", sa.Date, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("marked_by", sa.String(36), nullable=False),
        sa.Column(
            "marked_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("student_id", "session_date", name="uq_attendance_student_day"),
        sa.CheckConstraint(
            "status IN ('present', 'excused', 'makeup', 'absent')",
            name="ck_attendance_status",
        ),
    )
    op.create_index("ix_attendance_enrollment_id", "attendance", ["enrollment_id"])
    op.create_index("ix_attendance_class_id", "attendance", ["class_id"])

    op.create_table(
        "absence_requests",
        _id_column(),
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column(
            "enrollment_id",
            sa.String(36),
            sa.ForeignKey("enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("class_id", sa.String(36), nullable=True),
        sa.Column("session_date", sa.Date, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="approved"),
        sa.Column(
            "requested_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_absence_requests_enrollment_id", "absence_requests", ["enrollment_id"]
    )
    op.create_index("ix_absence_requests_class_id", "absence_requests", ["class_id"])
    op.create_index(
        "ix_absence_requests_student_day", "absence_requests", ["student_id", "session_date"]
    )

    op.create_table(
        "makeup_requests",
        _id_column(),
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column(
            "enrollment_id",
            sa.String(36),
            sa.ForeignKey("enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("original_class_id", sa.String(36), nullable=True),
        sa.Column("original_session_date", sa.Date, nullable=False),
        sa.Column("new_class_id", sa.String(36), nullable=True),
        sa.Column("new_session_date", sa.Date, nullable=False),
        sa.Column("new_start_time", sa.String(5), nullable=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="approved"),
        sa.Column(
            "requested_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_makeup_requests_status"
        ),
    )
    op.create_index(
        "ix_makeup_requests_enrollment_id", "makeup_requests", ["enrollment_id"]
    )
    op.create_index(
        "ix_makeup_requests_student_original",
        "makeup_requests",
        ["student_id", "original_session_date"],
    )
    op.create_index(
        "ix_makeup_requests_target", "makeup_requests", ["new_class_id", "new_session_date"]
    )


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table("makeup_requests")
    op.drop_table("absence_requests")
    op.drop_table("attendance")
    op.drop_table("class_cancellations")
    op.drop_table("class_students")
    op.drop_table("class_sessions")
    op.drop_table("classes")
    op.drop_index("uq_enrollments_student_open", table_name="enrollments")
    op.drop_table("enrollments")
