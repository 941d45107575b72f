# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Common schemas and enums shared by the API models.

Wire format is camelCase (``studentId``, ``sessionDate``); snake_case
is accepted on input as well. Responses are emitted in camelCase.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model with camelCase aliases and name-based population."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DEFERRED = "deferred"


class PaymentMode(str, Enum):
    """How the paid session count is derived.

    - DEFAULT: fixed 12 sessions
    - CUSTOM: custom_weeks x frequency sessions
    """

    DEFAULT = "default"
    CUSTOM = "custom"


class AttendanceStatus(str, Enum):
    """Attendance marks. PRESENT and MAKEUP consume a session."""

    PRESENT = "present"
    EXCUSED = "excused"
    MAKEUP = "makeup"
    ABSENT = "absent"


class RequestStatus(str, Enum):
    """Status of absence and makeup requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


COUNTED_ATTENDANCE = frozenset({AttendanceStatus.PRESENT.value, AttendanceStatus.MAKEUP.value})
