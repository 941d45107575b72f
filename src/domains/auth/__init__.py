# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Caller identity is issued by an external service. This package only
verifies bearer tokens and exposes the user id and user type.

Exports:
    JWTManager: JWT token creation and validation.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "JWTManager",
    "TokenPayload",
    "TokenExpiredError",
    "InvalidTokenError",
]
