# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

The ledger tests run against a throwaway SQLite database (aiosqlite) per
test, so every service is exercised through real SQL without a running
PostgreSQL.

Environment variables are set before any ``src`` import so that the
cached settings and the module-level rate limiter pick them up.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULING_TIMEZONE"] = "Asia/Ho_Chi_Minh"

from collections.abc import AsyncIterator, Callable
from datetime import date, timedelta
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.core.config import clear_settings_cache, get_settings
from src.domains.auth.jwt import JWTManager
from src.domains.class_ import ClassService
from src.domains.enrollment import EnrollmentService
from src.infrastructure.database.connection import create_engine_for_url, create_sessionmaker
from src.infrastructure.database.models import Base
from src.models.class_ import ClassCreateRequest, ClassSessionSchema, ClassResponse
from src.models.enrollment import EnrollmentCreateRequest, EnrollmentResponse, ScheduleSlot
from src.utils.datetime import js_weekday, local_today

clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """Create a file-backed SQLite engine with the full schema."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessionmaker configured like the application's."""
    return create_sessionmaker(engine)


@pytest.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a database session for a single test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def count_rows(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Any]:
    """Count committed rows of a model in a fresh session.

    A separate session sees only what was actually committed, which is
    what rollback tests need to check.
    """

    async def _count(model: Any, *conditions: Any) -> int:
        async with session_factory() as session:
            query = select(func.count()).select_from(model)
            if conditions:
                query = query.where(*conditions)
            return (await session.execute(query)).scalar() or 0

    return _count


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def session_day() -> date:
    """A fixed past Monday, useful where lead times do not apply."""
    return date(2025, 10, 6)


@pytest.fixture
def make_class(db: AsyncSession) -> Callable[..., Any]:
    """Create classes through ClassService.

    Each call uses a distinct grade/time combination unless overridden so
    that the overlap check does not reject fixtures.
    """
    counter = {"n": 0}

    async def _make(
        name: str | None = None,
        grade: int = 8,
        course_id: str | None = "MATH-8",
        max_students: int | None = 20,
        sessions: list[ClassSessionSchema] | None = None,
    ) -> ClassResponse:
        counter["n"] += 1
        hour = 7 + counter["n"]
        if sessions is None:
            sessions = [
                ClassSessionSchema(
                    day_of_week=1,
                    start_time=f"{hour:02d}:00",
                    end_time=f"{hour:02d}:45",
                )
            ]
        return await ClassService(db).create_class(
            ClassCreateRequest(
                name=name or f"Class {counter['n']}",
                grade=grade,
                course_id=course_id,
                max_students=max_students,
                sessions=sessions,
            )
        )

    return _make


@pytest.fixture
def make_enrollment(db: AsyncSession) -> Callable[..., Any]:
    """Create enrollments through EnrollmentService."""

    async def _make(
        student_id: str | None = None,
        course_id: str = "MATH-8",
        frequency: int = 1,
        start_date: str = "2025-01-06",
        schedule: list[ScheduleSlot] | None = None,
        **extra: Any,
    ) -> EnrollmentResponse:
        return await EnrollmentService(db).create_enrollment(
            EnrollmentCreateRequest(
                student_id=student_id or str(uuid4()),
                course_id=course_id,
                frequency=frequency,
                start_date=start_date,
                schedule=schedule,
                **extra,
            )
        )

    return _make


@pytest.fixture
def upcoming_weekday() -> Callable[..., date]:
    """First date at least ``min_days`` ahead that falls on ``day_of_week``."""

    def _upcoming(day_of_week: int, min_days: int = 2) -> date:
        day = local_today() + timedelta(days=min_days)
        return day + timedelta(days=(day_of_week - js_weekday(day)) % 7)

    return _upcoming


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest.fixture
def jwt_manager() -> JWTManager:
    """JWT manager using the test secret."""
    return JWTManager(get_settings().jwt)


@pytest.fixture
def token_for(jwt_manager: JWTManager) -> Callable[[str, str], str]:
    """Mint an access token for a user id and type."""

    def _token(user_id: str, user_type: str = "teacher") -> str:
        return jwt_manager.create_access_token(user_id, user_type=user_type)

    return _token


@pytest.fixture
def teacher_id() -> str:
    """Provide a sample teacher ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440010"


@pytest.fixture
def student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (in-process API)"
    )
