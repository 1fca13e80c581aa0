"""
infrastructure.persistence.migrations - Note store schema creation.

Called once at startup by the factory (or the CLI `init` command).
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS notes (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        content TEXT NOT NULL DEFAULT '',
        content_plaintext TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT 'general',
        embedding TEXT,
        source_url TEXT NOT NULL DEFAULT '',
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    )""",
]

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_notes_category ON notes(category)",
    "CREATE INDEX IF NOT EXISTS idx_notes_updated_at ON notes(updated_at)",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create the notes table and its indexes if they don't exist.

    Safe to call multiple times (uses IF NOT EXISTS).
    """
    async with connection.acquire() as conn:
        for ddl in [*_TABLES, *_INDEXES]:
            await conn.execute(ddl)
    logger.info("Note store schema ready at %s", connection.db_path)
