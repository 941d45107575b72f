# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Translation of domain errors into HTTP responses.

Route handlers catch SessionLedgerError and re-raise the result of
``to_http_exception``. The exception handlers registered by the app
cover request-body validation and anything a route did not catch.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.domains.errors import (
    ConflictError,
    NotFoundError,
    SessionLedgerError,
    ValidationError,
)
from src.infrastructure.database.connection import DatabaseError

logger = logging.getLogger(__name__)


def status_for(error: SessionLedgerError) -> int:
    """HTTP status code for a domain error category."""
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, (ValidationError, ConflictError)):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(error: SessionLedgerError) -> HTTPException:
    """Convert a domain error into an HTTPException with a terse detail.

    InternalError messages are already terse; the root cause was logged
    where the transaction rolled back.
    """
    return HTTPException(
        status_code=status_for(error),
        detail=str(error) or "Internal server error",
    )


async def ledger_error_handler(request: Request, exc: SessionLedgerError) -> JSONResponse:
    """Handle domain errors that escaped a route."""
    code = status_for(exc)
    if code >= 500:
        logger.error("Unhandled ledger error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed request bodies and query strings as 400."""
    errors = exc.errors()
    fields = [".".join(str(part) for part in error["loc"] if part != "body") for error in errors]
    logger.debug("Request validation failed on %s: %s", request.url.path, fields)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": f"Invalid request fields: {', '.join(f for f in fields if f)}",
            "errors": [
                {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
                for error in errors
            ],
        },
    )


async def database_error_handler(
    request: Request, exc: SQLAlchemyError | DatabaseError
) -> JSONResponse:
    """Log the full database error server-side and answer a terse 500."""
    logger.error(
        "Database error on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
