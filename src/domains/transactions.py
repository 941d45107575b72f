# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transaction boundary shared by the domain services.

Every write path in the ledger runs inside ``atomic()``: the block's
changes are committed together, or rolled back together. Constraint
violations become ConflictError, other database failures InternalError.
Domain errors raised inside the block roll back and propagate unchanged.

Example:
    async with atomic(self.db, conflict="Attendance already recorded"):
        self.db.add(record)
        await self._consume_session(enrollment_id)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import ConflictError, InternalError, SessionLedgerError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(
    db: AsyncSession,
    *,
    conflict: str = "Conflicting record already exists",
    failure: str = "Database operation failed",
) -> AsyncIterator[AsyncSession]:
    """Run a block of writes as one transaction.

    Args:
        db: Session the block writes through.
        conflict: Message for ConflictError on a constraint violation.
        failure: Message for InternalError on any other database error.

    Yields:
        The same session.

    Raises:
        ConflictError: If a unique or check constraint rejects the writes.
        InternalError: If the database fails for another reason.
    """
    try:
        yield db
        await db.commit()
    except SessionLedgerError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Constraint violation, rolled back: %s", e.orig)
        raise ConflictError(conflict) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Transaction failed, rolled back")
        raise InternalError(failure) from e
