# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the authentication middleware.

Tests the middleware components in isolation from database.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import SecretStr

from src.api.dependencies import require_auth, require_teacher_or_admin
from src.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from src.domains.auth.jwt import JWTManager


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(AuthMiddleware)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/v1/test")
    async def test_endpoint(request: Request) -> dict:
        user = get_current_user(request)
        return {"user_id": user.id if user else None}

    @app.get("/api/v1/private")
    async def private(user: CurrentUser = Depends(require_auth)) -> dict:
        return {"user_id": user.id}

    @app.get("/api/v1/staff")
    async def staff(user: CurrentUser = Depends(require_teacher_or_admin)) -> dict:
        return {"user_id": user.id}

    return app


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_public_path_bypasses_auth(self) -> None:
        """Test that public paths don't require authentication."""
        client = TestClient(_app())
        response = client.get("/health")

        assert response.status_code == 200

    @patch("src.api.middleware.auth.get_settings")
    def test_valid_token_sets_user(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that valid token sets request.state.user."""
        mock_settings.return_value.jwt = jwt_settings
        user_id = str(uuid4())
        token = jwt_manager.create_access_token(user_id=user_id, user_type="student")

        client = TestClient(_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == user_id

    @patch("src.api.middleware.auth.get_settings")
    def test_no_token_sets_user_none(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that missing token sets request.state.user to None."""
        mock_settings.return_value.jwt = jwt_settings

        client = TestClient(_app())
        response = client.get("/api/v1/test")

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    @patch("src.api.middleware.auth.get_settings")
    def test_invalid_token_sets_user_none(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that invalid token sets request.state.user to None."""
        mock_settings.return_value.jwt = jwt_settings

        client = TestClient(_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": "Bearer invalid-token"},
        )

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    @patch("src.api.middleware.auth.get_settings")
    def test_expired_token_sets_user_none(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that an expired token is ignored."""
        mock_settings.return_value.jwt = jwt_settings
        token = jwt_manager.create_access_token(
            user_id=str(uuid4()), expires_in=timedelta(seconds=-5)
        )

        client = TestClient(_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.json()["user_id"] is None

    @patch("src.api.middleware.auth.get_settings")
    def test_non_bearer_scheme_ignored(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that only the Bearer scheme is read."""
        mock_settings.return_value.jwt = jwt_settings

        client = TestClient(_app())
        response = client.get("/api/v1/test", headers={"Authorization": "Basic abc"})

        assert response.json()["user_id"] is None


class TestAuthDependencies:
    """Tests for require_auth and require_teacher_or_admin."""

    @patch("src.api.middleware.auth.get_settings")
    def test_require_auth_rejects_anonymous(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that protected endpoints answer 401 without a token."""
        mock_settings.return_value.jwt = jwt_settings

        response = TestClient(_app()).get("/api/v1/private")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @patch("src.api.middleware.auth.get_settings")
    def test_student_forbidden_on_staff_endpoint(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that students get 403 from staff-only endpoints."""
        mock_settings.return_value.jwt = jwt_settings
        token = jwt_manager.create_access_token(user_id=str(uuid4()), user_type="student")

        response = TestClient(_app()).get(
            "/api/v1/staff",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 403

    @patch("src.api.middleware.auth.get_settings")
    def test_teacher_allowed_on_staff_endpoint(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that teachers pass the staff check."""
        mock_settings.return_value.jwt = jwt_settings
        user_id = str(uuid4())
        token = jwt_manager.create_access_token(user_id=user_id, user_type="teacher")

        response = TestClient(_app()).get(
            "/api/v1/staff",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == user_id


class TestCurrentUser:
    """Tests for CurrentUser class."""

    @pytest.mark.parametrize(
        ("user_type", "is_staff", "is_student"),
        [
            ("teacher", True, False),
            ("admin", True, False),
            ("student", False, True),
            (None, False, False),
        ],
    )
    def test_roles(
        self,
        jwt_manager: JWTManager,
        user_type: str | None,
        is_staff: bool,
        is_student: bool,
    ) -> None:
        """Test staff and student flags derive from user_type."""
        token = jwt_manager.create_access_token(user_id=str(uuid4()), user_type=user_type)
        user = CurrentUser(jwt_manager.decode_token(token))

        assert user.is_staff is is_staff
        assert user.is_student is is_student
