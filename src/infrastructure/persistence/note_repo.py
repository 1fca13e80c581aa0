"""
infrastructure.persistence.note_repo - SQLite note repository.

Embeddings are stored as JSON arrays. Similarity queries load a fresh
snapshot of every embedded note and rank it in process; nothing is cached
between calls.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional, Sequence
from uuid import uuid4

from domain.entities import Note, NoteDraft
from domain.models import ScoredNote
from domain.ranking import rank
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_UPDATABLE = ("title", "content", "content_plaintext", "category", "embedding", "source_url")


def generate_note_id(now_ms: Optional[int] = None) -> str:
    return f"note_{now_ms or int(time.time() * 1000)}_{uuid4().hex[:9]}"


def _encode_embedding(embedding: Optional[Sequence[float]]) -> Optional[str]:
    if not embedding:
        return None
    return json.dumps([float(x) for x in embedding])


class SQLiteNoteRepository:
    """Async SQLite implementation of NoteStorePort."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get_by_id(self, note_id: str) -> Optional[Note]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM notes WHERE id = ?", (note_id,),
            )
            return self._row_to_entity(rows[0]) if rows else None

    async def list_notes(self) -> list[Note]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM notes ORDER BY updated_at DESC",
            )
            return [self._row_to_entity(r) for r in rows]

    async def list_categories(self) -> list[str]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT DISTINCT category FROM notes WHERE category != '' ORDER BY category",
            )
            return [r["category"] for r in rows]

    async def query_by_similarity(
        self, vector: Sequence[float], limit: int,
    ) -> list[ScoredNote]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM notes WHERE embedding IS NOT NULL",
            )
        notes = [self._row_to_entity(r) for r in rows]
        return rank(vector, notes, limit)

    async def search_by_text(self, query: str, limit: int = 10) -> list[Note]:
        """Case-insensitive substring match on title or plain-text content."""
        needle = query.strip()
        if not needle:
            return []
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT * FROM notes
                   WHERE instr(lower(title), lower(?)) > 0
                      OR instr(lower(content_plaintext), lower(?)) > 0
                   ORDER BY updated_at DESC
                   LIMIT ?""",
                (needle, needle, limit),
            )
            return [self._row_to_entity(r) for r in rows]

    async def create(self, draft: NoteDraft) -> Note:
        now = int(time.time() * 1000)
        note = Note(
            id=generate_note_id(now),
            title=draft.title,
            content_plaintext=draft.content_plaintext,
            category=draft.category or "general",
            embedding=tuple(draft.embedding) if draft.embedding else None,
            created_at=now,
            updated_at=now,
            content=draft.content or draft.content_plaintext,
            source_url=draft.source_url,
        )
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO notes
                   (id, title, content, content_plaintext, category,
                    embedding, source_url, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (note.id, note.title, note.content, note.content_plaintext,
                 note.category, _encode_embedding(note.embedding),
                 note.source_url, note.created_at, note.updated_at),
            )
        logger.info("Created note %s (%s)", note.id, note.category)
        return note

    async def update(self, note_id: str, **changes: Any) -> Optional[Note]:
        """Apply `changes` to a note. Returns the updated note, or None if missing."""
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update note fields: {', '.join(sorted(unknown))}")

        if "embedding" in changes:
            changes["embedding"] = _encode_embedding(changes["embedding"])
        changes["updated_at"] = int(time.time() * 1000)

        assignments = ", ".join(f"{column} = ?" for column in changes)
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                f"UPDATE notes SET {assignments} WHERE id = ?",
                (*changes.values(), note_id),
            )
            if cursor.rowcount == 0:
                return None
        return await self.get_by_id(note_id)

    async def delete(self, note_id: str) -> bool:
        async with self._conn.acquire() as conn:
            cursor = await conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted note %s", note_id)
        return deleted

    @staticmethod
    def _row_to_entity(row) -> Note:
        embedding = json.loads(row["embedding"]) if row["embedding"] else None
        return Note(
            id=row["id"],
            title=row["title"] or "",
            content_plaintext=row["content_plaintext"] or "",
            category=row["category"] or "general",
            embedding=tuple(embedding) if embedding else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            content=row["content"] or "",
            source_url=row["source_url"] or "",
        )
