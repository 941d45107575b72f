# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the session ledger.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    generate_uuid,
)
from src.infrastructure.database.models.class_ import (
    Class,
    ClassCancellation,
    ClassSession,
    ClassStudent,
)
from src.infrastructure.database.models.enrollment import (
    OPEN_ENROLLMENT_STATUSES,
    Enrollment,
)
from src.infrastructure.database.models.records import (
    AbsenceRequest,
    Attendance,
    MakeupRequest,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "generate_uuid",
    "Enrollment",
    "OPEN_ENROLLMENT_STATUSES",
    "Class",
    "ClassSession",
    "ClassStudent",
    "ClassCancellation",
    "Attendance",
    "AbsenceRequest",
    "MakeupRequest",
]
