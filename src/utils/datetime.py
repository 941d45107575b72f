# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the session ledger.

This module is the single place where calendar dates are interpreted.
Every service that reasons about "which day is this session on" goes
through these helpers instead of building dates ad hoc.

Design Decisions:
-----------------
1. Audit timestamps (created_at, marked_at, requested_at) are stored in UTC.
2. Session days are plain calendar dates in the school timezone
   (SCHEDULING_TIMEZONE), stored as DATE columns.
3. "yyyy-mm-dd" strings are split into components and never passed
   through generic datetime parsing, so no UTC shift can move a day.
4. Day-of-week numbers follow the 0=Sunday .. 6=Saturday convention
   used by class schedules.

Usage:
------
    from src.utils.datetime import parse_local_date, at_local_time

    day = parse_local_date("2024-01-01")
    moment = at_local_time(day, "17:30")
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

_DATE_ONLY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_CLOCK = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def school_timezone() -> ZoneInfo:
    """Get the configured school timezone.

    Returns:
        ZoneInfo for SCHEDULING_TIMEZONE.
    """
    from src.core.config import get_settings

    return ZoneInfo(get_settings().scheduling.timezone)


def local_now() -> datetime:
    """Get the current moment in the school timezone."""
    return datetime.now(school_timezone())


def local_today() -> date:
    """Get today's calendar date in the school timezone."""
    return local_now().date()


def is_date_only(value: str) -> bool:
    """Check whether a string is a bare yyyy-mm-dd calendar date."""
    return bool(_DATE_ONLY.match(value.strip()))


def parse_local_date(value: str) -> date:
    """Parse a yyyy-mm-dd string as a local calendar date.

    The string is split into components explicitly; no timezone is
    involved, so the resulting day is exactly the one written.

    Args:
        value: Date string in yyyy-mm-dd format.

    Returns:
        Calendar date.

    Raises:
        ValueError: If the string is not a valid yyyy-mm-dd date.
    """
    match = _DATE_ONLY.match(value.strip())
    if not match:
        raise ValueError(f"Expected yyyy-mm-dd date, got {value!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def parse_clock(value: str) -> time:
    """Parse an HH:MM wall-clock string.

    Raises:
        ValueError: If the string is not HH:MM.
    """
    match = _CLOCK.match(value.strip())
    if not match:
        raise ValueError(f"Expected HH:MM time, got {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def is_valid_clock(value: str) -> bool:
    """Check whether a string is a valid HH:MM time."""
    return bool(_CLOCK.match(value.strip()))


def clock_minutes(value: str) -> int:
    """Convert HH:MM to minutes since midnight."""
    parsed = parse_clock(value)
    return parsed.hour * 60 + parsed.minute


def parse_local_moment(value: str | date | datetime) -> datetime:
    """Interpret a session date input as an aware moment in the school timezone.

    - ``yyyy-mm-dd`` strings and ``date`` objects become local midnight.
    - ISO-8601 datetimes with an offset are converted into the school timezone.
    - Naive ISO-8601 datetimes are taken as school-local wall time.

    Args:
        value: Date string, date, or datetime.

    Returns:
        Timezone-aware datetime in the school timezone.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    tz = school_timezone()

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)
    elif is_date_only(value):
        return datetime.combine(parse_local_date(value), time.min, tzinfo=tz)
    else:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def clock_of(moment: datetime) -> str | None:
    """Get the HH:MM wall time of a local moment, or None at midnight."""
    if moment.hour == 0 and moment.minute == 0:
        return None
    return f"{moment.hour:02d}:{moment.minute:02d}"


def at_local_time(day: date, clock: str | None = None) -> datetime:
    """Combine a calendar day with an optional HH:MM time in the school timezone.

    Args:
        day: Calendar date.
        clock: HH:MM wall time; midnight when omitted.

    Returns:
        Timezone-aware datetime in the school timezone.
    """
    wall = parse_clock(clock) if clock else time.min
    return datetime.combine(day, wall, tzinfo=school_timezone())


def js_weekday(day: date) -> int:
    """Get day-of-week as 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def next_weekday_on_or_after(start: date, day_of_week: int) -> date:
    """Get the first date on or after ``start`` that falls on ``day_of_week``.

    Args:
        start: Earliest acceptable date.
        day_of_week: Target weekday, 0=Sunday .. 6=Saturday.

    Returns:
        Matching calendar date (``start`` itself if it matches).
    """
    offset = (day_of_week - js_weekday(start)) % 7
    return start + timedelta(days=offset)


def add_weeks(day: date, weeks: int) -> date:
    """Shift a calendar date by whole weeks."""
    return day + timedelta(days=weeks * 7)


def hours_until(moment: datetime) -> float:
    """Hours from now until ``moment`` (negative if in the past)."""
    return (moment - utc_now()).total_seconds() / 3600


def days_until(moment: datetime) -> float:
    """Days from now until ``moment`` (negative if in the past)."""
    return (moment - utc_now()).total_seconds() / 86400
