# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the ledger API endpoints.

Each test drives the real application over HTTP against a fresh SQLite
database.
"""

from datetime import date, timedelta

import pytest

from src.infrastructure.database.models import Attendance, MakeupRequest
from src.utils.datetime import local_now

API = "/api/v1"


async def _create_enrollment(client, headers, student_id, **body):
    payload = {"studentId": student_id, "courseId": "MATH-8", "frequency": 1, "startDate": "2024-01-01"}
    payload.update(body)
    response = await client.post(f"{API}/enrollments", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_class(client, headers, name="Math 8A", start="08:00", end="09:30"):
    response = await client.post(
        f"{API}/classes",
        json={
            "name": name,
            "grade": 8,
            "courseId": "MATH-8",
            "maxStudents": 10,
            "sessions": [{"dayOfWeek": 1, "startTime": start, "endTime": end}],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestEnrollmentsAPI:
    """Tests for /api/v1/enrollments."""

    @pytest.mark.asyncio
    async def test_default_plan(self, client, teacher_headers, student_id) -> None:
        """Twice-weekly default enrollment spans nine weeks with 12 sessions."""
        body = await _create_enrollment(
            client,
            teacher_headers,
            student_id,
            frequency=2,
            startDate="2024-01-01",
            paymentMode="default",
        )

        assert body["totalSessions"] == 12
        assert body["endDate"] == "2024-03-04"
        assert body["remainingSessions"] == 12
        assert body["status"] == "pending"

    @pytest.mark.asyncio
    async def test_custom_plan(self, client, teacher_headers, student_id) -> None:
        """Custom enrollments pay weeks times frequency."""
        body = await _create_enrollment(
            client,
            teacher_headers,
            student_id,
            frequency=1,
            customWeeks=10,
            paymentMode="custom",
        )

        assert body["totalSessions"] == 10
        assert body["endDate"] == "2024-03-11"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, teacher_headers) -> None:
        """Missing required fields answer 400 with their names."""
        response = await client.post(
            f"{API}/enrollments", json={"courseId": "MATH-8"}, headers=teacher_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Missing required fields: studentId, frequency, startDate"
        )

    @pytest.mark.asyncio
    async def test_second_open_enrollment(self, client, teacher_headers, student_id) -> None:
        """A second pending enrollment for the student answers 400."""
        await _create_enrollment(client, teacher_headers, student_id)

        response = await client.post(
            f"{API}/enrollments",
            json={"studentId": student_id, "courseId": "ENG", "frequency": 1, "startDate": "2024-02-01"},
            headers=teacher_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Student already has an active enrollment"

    @pytest.mark.asyncio
    async def test_schema_error_is_400(self, client, teacher_headers) -> None:
        """Malformed bodies answer 400 rather than 422."""
        response = await client.post(
            f"{API}/enrollments", json={"frequency": "often"}, headers=teacher_headers
        )

        assert response.status_code == 400
        assert "frequency" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_students_cannot_create(self, client, student_headers, student_id) -> None:
        """Creating enrollments is staff-only."""
        response = await client.post(
            f"{API}/enrollments",
            json={"studentId": student_id, "courseId": "MATH-8", "frequency": 1, "startDate": "2024-01-01"},
            headers=student_headers,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_defer_once(self, client, teacher_headers, student_id) -> None:
        """The second deferral is refused and the end date stays put."""
        created = await _create_enrollment(client, teacher_headers, student_id)

        first = await client.patch(
            f"{API}/enrollments/{created['id']}",
            json={"deferralWeeks": 2},
            headers=teacher_headers,
        )
        second = await client.patch(
            f"{API}/enrollments/{created['id']}",
            json={"deferralWeeks": 1},
            headers=teacher_headers,
        )
        current = await client.get(f"{API}/enrollments/{created['id']}", headers=teacher_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "deferred"
        assert first.json()["endDate"] == "2024-05-20"
        assert second.status_code == 400
        assert "Only one deferral" in second.json()["detail"]
        assert current.json()["endDate"] == "2024-05-20"

    @pytest.mark.asyncio
    async def test_renew_and_list(self, client, teacher_headers, student_id) -> None:
        """Renewal opens a successor the day after the source ends."""
        created = await _create_enrollment(client, teacher_headers, student_id)

        renewed = await client.post(
            f"{API}/enrollments/{created['id']}/renew", headers=teacher_headers
        )
        listed = await client.get(
            f"{API}/enrollments",
            params={"studentId": student_id, "status": "completed"},
            headers=teacher_headers,
        )

        assert renewed.status_code == 201
        assert renewed.json()["startDate"] == "2024-05-07"
        assert listed.json()["total"] == 1
        assert listed.json()["items"][0]["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_unknown_enrollment(self, client, teacher_headers) -> None:
        """Unknown ids answer 404."""
        response = await client.get(f"{API}/enrollments/missing", headers=teacher_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client) -> None:
        """Anonymous requests answer 401."""
        response = await client.get(f"{API}/enrollments")

        assert response.status_code == 401


class TestAttendanceAPI:
    """Tests for /api/v1/attendance."""

    @pytest.mark.asyncio
    async def test_present_then_duplicate(
        self, client, teacher_headers, teacher_id, student_id
    ) -> None:
        """A present mark consumes a session; a second mark that day is refused."""
        enrollment = await _create_enrollment(client, teacher_headers, student_id)
        mark = {
            "studentId": student_id,
            "enrollmentId": enrollment["id"],
            "sessionDate": "2024-01-08T08:00:00",
            "status": "present",
            "markedBy": teacher_id,
        }

        first = await client.post(f"{API}/attendance", json=mark, headers=teacher_headers)
        after = await client.get(f"{API}/enrollments/{enrollment['id']}", headers=teacher_headers)
        second = await client.post(
            f"{API}/attendance",
            json={**mark, "sessionDate": "2024-01-08"},
            headers=teacher_headers,
        )

        assert first.status_code == 201
        assert after.json()["remainingSessions"] == 11
        assert after.json()["completedSessions"] == 1
        assert second.status_code == 400
        assert second.json()["detail"] == "Attendance already recorded for this date"

    @pytest.mark.asyncio
    async def test_delete_returns_session(
        self, client, teacher_headers, teacher_id, student_id
    ) -> None:
        """Deleting a present mark gives the session back."""
        enrollment = await _create_enrollment(client, teacher_headers, student_id)
        created = await client.post(
            f"{API}/attendance",
            json={
                "studentId": student_id,
                "enrollmentId": enrollment["id"],
                "sessionDate": "2024-01-08",
                "status": "present",
                "markedBy": teacher_id,
            },
            headers=teacher_headers,
        )

        deleted = await client.delete(
            f"{API}/attendance/{created.json()['id']}", headers=teacher_headers
        )
        after = await client.get(f"{API}/enrollments/{enrollment['id']}", headers=teacher_headers)

        assert deleted.status_code == 204
        assert after.json()["remainingSessions"] == 12


class TestAbsencesAPI:
    """Tests for /api/v1/absences."""

    @pytest.mark.asyncio
    async def test_lead_time_and_teacher_override(
        self, client, teacher_headers, student_id, count_rows
    ) -> None:
        """A late request is refused unless a teacher enters it."""
        enrollment = await _create_enrollment(client, teacher_headers, student_id)
        body = {
            "studentId": student_id,
            "enrollmentId": enrollment["id"],
            "sessionDate": (local_now() + timedelta(hours=2)).isoformat(),
            "reason": "Doctor appointment",
            "markedByTeacher": False,
        }

        refused = await client.post(f"{API}/absences", json=body, headers=teacher_headers)
        accepted = await client.post(
            f"{API}/absences", json={**body, "markedByTeacher": True}, headers=teacher_headers
        )

        assert refused.status_code == 400
        assert accepted.status_code == 201
        assert accepted.json()["status"] == "approved"
        assert await count_rows(
            Attendance,
            Attendance.student_id == student_id,
            Attendance.status == "excused",
        ) == 1

    @pytest.mark.asyncio
    async def test_student_cannot_claim_teacher_override(
        self, client, teacher_headers, student_headers, student_id
    ) -> None:
        """Students may not skip the notice period themselves."""
        enrollment = await _create_enrollment(client, teacher_headers, student_id)

        response = await client.post(
            f"{API}/absences",
            json={
                "studentId": student_id,
                "enrollmentId": enrollment["id"],
                "sessionDate": (local_now() + timedelta(hours=2)).isoformat(),
                "reason": "Late notice",
                "markedByTeacher": True,
            },
            headers=student_headers,
        )

        assert response.status_code == 403


class TestClassesAPI:
    """Tests for /api/v1/classes including cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_class_cascade(
        self, client, teacher_headers, token_for, count_rows
    ) -> None:
        """Three enrolled students each get a mark, an absence and a placeholder."""
        class_ = await _create_class(client, teacher_headers)
        for n in range(3):
            student = f"student-{n}"
            await _create_enrollment(client, teacher_headers, student)
            added = await client.post(
                f"{API}/classes/{class_['id']}/students",
                json={"studentId": student},
                headers=teacher_headers,
            )
            assert added.status_code == 200

        cancelled = await client.post(
            f"{API}/classes/{class_['id']}/cancel",
            json={"date": "2024-01-08"},
            headers=teacher_headers,
        )
        again = await client.post(
            f"{API}/classes/{class_['id']}/cancel",
            json={"date": "2024-01-08"},
            headers=teacher_headers,
        )

        assert cancelled.status_code == 200
        body = cancelled.json()
        assert body["attendanceCreated"] == 3
        assert body["absencesCreated"] == 3
        assert body["makeupsCreated"] == 3
        assert body["classInfo"]["cancelledDates"] == ["2024-01-08"]
        assert again.status_code == 400
        assert again.json()["detail"] == "This date is already cancelled"
        assert await count_rows(Attendance, Attendance.status == "excused") == 3
        assert await count_rows(
            MakeupRequest,
            MakeupRequest.status == "pending",
            MakeupRequest.new_session_date == date(2024, 1, 15),
        ) == 3

    @pytest.mark.asyncio
    async def test_enrollment_activated_on_join(
        self, client, teacher_headers, student_id
    ) -> None:
        """Adding a student to a class activates their pending enrollment."""
        class_ = await _create_class(client, teacher_headers)
        enrollment = await _create_enrollment(client, teacher_headers, student_id)

        await client.post(
            f"{API}/classes/{class_['id']}/students",
            json={"studentId": student_id},
            headers=teacher_headers,
        )
        current = await client.get(f"{API}/enrollments/{enrollment['id']}", headers=teacher_headers)

        assert current.json()["status"] == "active"

    @pytest.mark.asyncio
    async def test_overlapping_class_rejected(self, client, teacher_headers) -> None:
        """Same-grade classes cannot share a slot."""
        await _create_class(client, teacher_headers)

        response = await client.post(
            f"{API}/classes",
            json={
                "name": "Math 8B",
                "grade": 8,
                "sessions": [{"dayOfWeek": 1, "startTime": "09:00", "endTime": "10:00"}],
            },
            headers=teacher_headers,
        )

        assert response.status_code == 400
        assert "Math 8A" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_deactivate(self, client, teacher_headers) -> None:
        """DELETE deactivates rather than removes."""
        class_ = await _create_class(client, teacher_headers)

        deleted = await client.delete(f"{API}/classes/{class_['id']}", headers=teacher_headers)
        current = await client.get(f"{API}/classes/{class_['id']}", headers=teacher_headers)

        assert deleted.status_code == 204
        assert current.json()["isActive"] is False


class TestMakeupsAPI:
    """Tests for /api/v1/makeups."""

    @pytest.mark.asyncio
    async def test_available_and_book(
        self, client, teacher_headers, student_headers, student_id
    ) -> None:
        """A student books a makeup into an offered class."""
        class_ = await _create_class(client, teacher_headers)
        enrollment = await _create_enrollment(client, teacher_headers, student_id)

        available = await client.get(
            f"{API}/makeups/available",
            params={"enrollmentId": enrollment["id"]},
            headers=student_headers,
        )
        slot = available.json()["slots"][0]
        booked = await client.post(
            f"{API}/makeups",
            json={
                "studentId": student_id,
                "enrollmentId": enrollment["id"],
                "originalSessionDate": "2024-01-08",
                "newClassId": slot["classId"],
                "newSessionDate": f"{slot['nextSessionDate']}T{slot['startTime']}:00",
                "reason": "Missed class",
            },
            headers=student_headers,
        )

        assert available.status_code == 200
        assert slot["classId"] == class_["id"]
        assert booked.status_code == 201
        assert booked.json()["status"] == "approved"
        assert booked.json()["newStartTime"] == "08:00"

    @pytest.mark.asyncio
    async def test_available_requires_enrollment(self, client, student_headers) -> None:
        """enrollmentId is required."""
        response = await client.get(f"{API}/makeups/available", headers=student_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields: enrollmentId"


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_liveness(self, client) -> None:
        """Liveness does not need a token or a database."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}
