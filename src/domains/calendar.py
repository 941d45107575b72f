# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request-facing date parsing for domain services.

Wraps the calendar policy in src.utils.datetime and turns unparseable
input into InvalidDateError so the API can answer 400.
"""

from datetime import date, datetime

from src.domains.errors import InvalidDateError
from src.utils.datetime import parse_local_moment


def parse_session_moment(value: str | date | datetime, field: str) -> datetime:
    """Parse a session date input into an aware local moment.

    Args:
        value: yyyy-mm-dd string, ISO datetime string, date or datetime.
        field: Wire name of the field, used in the error message.

    Returns:
        Timezone-aware datetime in the school timezone.

    Raises:
        InvalidDateError: If the value cannot be parsed.
    """
    try:
        return parse_local_moment(value)
    except (TypeError, ValueError) as e:
        raise InvalidDateError(f"Invalid {field}: {value!r}") from e


def parse_session_day(value: str | date | datetime, field: str) -> date:
    """Parse a session date input into its local calendar day."""
    return parse_session_moment(value, field).date()
