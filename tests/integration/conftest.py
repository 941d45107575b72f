# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for in-process API tests.

The application is built with create_app() and its database dependency
is pointed at the per-test SQLite database. Requests go through the full
middleware stack with real JWTs.
"""

from collections.abc import AsyncIterator, Callable

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.app import create_app
from src.api.dependencies import get_db


@pytest.fixture
def app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Create the application wired to the test database."""
    app = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client bound to the app without a running server."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def teacher_headers(token_for: Callable[[str, str], str], teacher_id: str) -> dict[str, str]:
    """Authorization header for a teacher."""
    return {"Authorization": f"Bearer {token_for(teacher_id, 'teacher')}"}


@pytest.fixture
def student_headers(token_for: Callable[[str, str], str], student_id: str) -> dict[str, str]:
    """Authorization header for the sample student."""
    return {"Authorization": f"Bearer {token_for(student_id, 'student')}"}
