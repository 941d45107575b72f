# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for enrollment entitlement arithmetic."""

from datetime import date

import pytest

from src.domains.enrollment import calculator
from src.domains.enrollment.calculator import AttendanceTally


class TestPlanArithmetic:
    """Tests for end date and session count derivation."""

    def test_twice_weekly_default_plan(self) -> None:
        """Two sessions a week run nine weeks and pay 12 sessions."""
        start = date(2025, 1, 6)

        assert calculator.compute_end_date(start, 2, "default", None) == date(2025, 3, 10)
        assert calculator.compute_total_sessions(2, "default", None) == 12

    def test_weekly_default_plan(self) -> None:
        """One session a week runs eighteen weeks and still pays 12."""
        start = date(2025, 1, 6)

        assert calculator.compute_end_date(start, 1, "default", None) == date(2025, 5, 12)
        assert calculator.compute_total_sessions(1, "default", None) == 12

    def test_custom_plan(self) -> None:
        """Custom plans pay weeks times frequency and span the paid weeks."""
        start = date(2025, 1, 6)

        assert calculator.compute_end_date(start, 2, "custom", 10) == date(2025, 3, 17)
        assert calculator.compute_total_sessions(2, "custom", 10) == 20

    def test_custom_mode_without_weeks_falls_back(self) -> None:
        """Custom mode with no weeks behaves like the default plan."""
        assert calculator.plan_weeks(1, "custom", None) == 18
        assert calculator.compute_total_sessions(1, "custom", None) == 12


class TestSessionLabel:
    """Tests for current week and label."""

    def test_current_week(self) -> None:
        """Week numbers are 1-based and 0 before the start."""
        start = date(2025, 1, 6)

        assert calculator.current_week(start, date(2025, 1, 5)) == 0
        assert calculator.current_week(start, date(2025, 1, 6)) == 1
        assert calculator.current_week(start, date(2025, 1, 13)) == 2

    @pytest.mark.parametrize(
        ("week", "total", "cycle", "expected"),
        [
            (0, 12, None, "upcoming"),
            (13, 12, None, "finished"),
            (3, 12, None, "3/12"),
            (6, 12, 4, "2/4"),
            (4, 12, 4, "4/4"),
        ],
    )
    def test_labels(self, week: int, total: int, cycle: int | None, expected: str) -> None:
        """Labels cover upcoming, finished, plain and cycled positions."""
        assert calculator.session_label(week, total, cycle) == expected


class TestAttendanceTally:
    """Tests for attendance summaries."""

    def test_perfect_attendance(self) -> None:
        """A full record is excellent and eligible to graduate."""
        tally = AttendanceTally(present=11, makeup=1)

        assert tally.unexcused_absences(12) == 0
        assert tally.participation_rate(12) == 100
        assert tally.study_status(12) == "excellent"
        assert tally.graduation_check(12) == (True, None)

    def test_too_few_attended(self) -> None:
        """Fewer than eight attended sessions blocks graduation."""
        tally = AttendanceTally(present=7, excused=0)

        eligible, reason = tally.graduation_check(9)

        assert eligible is False
        assert "only 7 sessions attended" in reason

    def test_too_many_unexcused(self) -> None:
        """More than four unexcused absences is critical."""
        tally = AttendanceTally(present=6, makeup=1, excused=2)

        assert tally.unexcused_absences(12) == 7
        assert tally.study_status(12) == "critical"
        eligible, reason = tally.graduation_check(12)
        assert eligible is False
        assert reason.startswith("7 unexcused absences")

    def test_status_buckets(self) -> None:
        """Unexcused counts map onto good and warning."""
        assert AttendanceTally(present=10).study_status(12) == "good"
        assert AttendanceTally(present=8).study_status(12) == "warning"

    def test_participation_with_no_sessions(self) -> None:
        """A zero-session plan reports zero participation."""
        assert AttendanceTally(present=3).participation_rate(0) == 0
