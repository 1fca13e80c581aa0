"""
infrastructure.persistence.connection - Async SQLite connection provider for the note store.

Each acquire() opens a short-lived aiosqlite connection, so every read sees
the latest committed state. Other processes may write to the same file;
the store never assumes exclusive access.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from domain.exceptions import RepositoryError

logger = logging.getLogger(__name__)

_BUSY_TIMEOUT_MS = 5000


class AsyncSQLiteConnection:
    """Opens connections to one SQLite file with commit/rollback handling."""

    def __init__(self, db_path: str):
        self._db_path = db_path

    @property
    def db_path(self) -> str:
        return self._db_path

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection; commit on success, roll back on exception.

        sqlite errors are re-raised as RepositoryError.
        """
        async with aiosqlite.connect(self._db_path) as conn:
            await conn.execute(f"PRAGMA busy_timeout = {_BUSY_TIMEOUT_MS}")
            conn.row_factory = aiosqlite.Row
            try:
                yield conn
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                logger.exception("Note store operation failed, transaction rolled back.")
                raise RepositoryError(str(e)) from e
            except Exception:
                await conn.rollback()
                raise
