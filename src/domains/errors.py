# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain exceptions for the session ledger.

Every service raises subclasses of SessionLedgerError. The API layer maps
the four base categories onto HTTP status codes:

- ValidationError: 400
- ConflictError: 400
- NotFoundError: 404
- InternalError: 500
"""


class SessionLedgerError(Exception):
    """Base exception for session ledger errors."""

    pass


class ValidationError(SessionLedgerError):
    """Raised when input is missing or violates a business rule."""

    pass


class NotFoundError(SessionLedgerError):
    """Raised when a referenced record does not exist."""

    pass


class ConflictError(SessionLedgerError):
    """Raised when a write would break a uniqueness rule."""

    pass


class InternalError(SessionLedgerError):
    """Raised when a multi-step write fails and has been rolled back."""

    pass


class MissingFieldsError(ValidationError):
    """Raised when required request fields are absent."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"Missing required fields: {', '.join(fields)}")


class LeadTimeError(ValidationError):
    """Raised when a request is made too close to the session."""

    pass


class InvalidDateError(ValidationError):
    """Raised when a date string cannot be interpreted."""

    pass


def require_fields(**values: object) -> None:
    """Raise MissingFieldsError for every value that is None or blank.

    Args:
        **values: Field name to submitted value.

    Raises:
        MissingFieldsError: If any value is missing.
    """
    missing = [
        name
        for name, value in values.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise MissingFieldsError(missing)
