# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pure entitlement arithmetic for enrollments.

No I/O here; the service layer feeds these functions and persists the
results.
"""

from dataclasses import dataclass
from datetime import date

from src.utils.datetime import add_weeks

DEFAULT_TOTAL_SESSIONS = 12
WEEKLY_PLAN_WEEKS = {1: 18, 2: 9}

UPCOMING_LABEL = "upcoming"
FINISHED_LABEL = "finished"

MAX_UNEXCUSED_ABSENCES = 4
MIN_ATTENDED_SESSIONS = 8


def plan_weeks(frequency: int, payment_mode: str, custom_weeks: int | None) -> int:
    """Number of weeks an enrollment period spans.

    Custom plans run for exactly ``custom_weeks``; default plans run 18
    weeks at one session a week and 9 weeks at two.
    """
    if payment_mode == "custom" and custom_weeks:
        return custom_weeks
    return WEEKLY_PLAN_WEEKS.get(frequency, WEEKLY_PLAN_WEEKS[2])


def compute_end_date(
    start_date: date,
    frequency: int,
    payment_mode: str,
    custom_weeks: int | None,
) -> date:
    """Derive the end date of an enrollment period.

    Args:
        start_date: First day of the period.
        frequency: Sessions per week.
        payment_mode: "default" or "custom".
        custom_weeks: Paid weeks for custom plans.

    Returns:
        start_date shifted by the plan's number of weeks.
    """
    return add_weeks(start_date, plan_weeks(frequency, payment_mode, custom_weeks))


def compute_total_sessions(frequency: int, payment_mode: str, custom_weeks: int | None) -> int:
    """Derive the paid session count.

    Custom plans pay ``custom_weeks * frequency``; default plans always
    pay for 12 sessions.
    """
    if payment_mode == "custom" and custom_weeks:
        return custom_weeks * frequency
    return DEFAULT_TOTAL_SESSIONS


def current_week(start_date: date, today: date) -> int:
    """1-based week number of ``today`` within the period (0 or less if not started)."""
    delta_days = (today - start_date).days
    if delta_days < 0:
        return 0
    return delta_days // 7 + 1


def session_label(week: int, total: int, cycle: int | None) -> str:
    """Human label for the current position in the period.

    Args:
        week: 1-based week number, 0 or less before the start.
        total: Number of weeks or sessions being counted against.
        cycle: Optional display cycle (e.g. 4 or 6).

    Returns:
        "upcoming", "finished", "w/total" or "n/cycle".
    """
    if week <= 0:
        return UPCOMING_LABEL
    if week > total:
        return FINISHED_LABEL
    if not cycle or cycle <= 0:
        return f"{week}/{total}"
    return f"{(week - 1) % cycle + 1}/{cycle}"


@dataclass(frozen=True)
class AttendanceTally:
    """Counts of attendance marks for one enrollment."""

    present: int = 0
    makeup: int = 0
    excused: int = 0
    absent: int = 0

    def unexcused_absences(self, total_sessions: int) -> int:
        """Sessions neither attended nor excused."""
        return max(0, total_sessions - self.present - self.makeup + self.excused)

    def participation_rate(self, total_sessions: int) -> int:
        """Attended sessions as a rounded percentage of the total."""
        if total_sessions <= 0:
            return 0
        return round((self.present + self.makeup) / total_sessions * 100)

    def graduation_check(self, total_sessions: int) -> tuple[bool, str | None]:
        """Whether attendance is good enough to finish the course.

        At most 4 unexcused absences and at least 8 attended sessions
        (regular or makeup) are required.

        Returns:
            Tuple of (eligible, reason when not eligible).
        """
        unexcused = self.unexcused_absences(total_sessions)
        if unexcused > MAX_UNEXCUSED_ABSENCES:
            return False, (
                f"{unexcused} unexcused absences (maximum {MAX_UNEXCUSED_ABSENCES})"
            )
        attended = self.present + self.makeup
        if attended < MIN_ATTENDED_SESSIONS:
            return False, f"only {attended} sessions attended (minimum {MIN_ATTENDED_SESSIONS})"
        return True, None

    def study_status(self, total_sessions: int) -> str:
        """Bucket unexcused absences into excellent, good, warning or critical."""
        unexcused = self.unexcused_absences(total_sessions)
        if unexcused == 0:
            return "excellent"
        if unexcused <= 2:
            return "good"
        if unexcused <= MAX_UNEXCUSED_ABSENCES:
            return "warning"
        return "critical"
