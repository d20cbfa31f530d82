"""
Shared plumbing for the per-entity stores.

A store is what the processors call (exists_by_key / save).  Each call
opens its own session and commits on its own, so every imported row is
an independent unit of work; a failed row never rolls back its
neighbours.  Database errors are translated into the pipeline's
PersistenceError family here and nowhere else.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from importer.core.logging import get_logger
from importer.pipeline.errors import PersistenceError, TransientPersistenceError

logger = get_logger(__name__)


def translate_db_error(exc: SQLAlchemyError, action: str) -> PersistenceError:
    """Map a SQLAlchemy exception onto the pipeline's persistence errors."""
    if isinstance(exc, IntegrityError):
        return PersistenceError(f"{action}: constraint violated ({exc.orig})")
    if isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        return TransientPersistenceError(f"{action}: database unavailable ({exc.orig})")
    return PersistenceError(f"{action}: {exc}")


class SessionStore:
    """Base for stores that run one short transaction per call."""

    entity_type: str = "unknown"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.warning(
                    "Database call failed",
                    entity_type=self.entity_type,
                    action=action,
                    error=str(exc),
                )
                raise translate_db_error(exc, action) from exc
