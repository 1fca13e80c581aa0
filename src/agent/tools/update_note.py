"""
agent.tools.update_note - Modify an existing note. Mutation tool.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool
from agent.tools.create_note import embed_or_none
from application.context import SessionContext
from domain.models import ToolKind
from domain.ports import EmbedderPort, NoteStorePort

logger = logging.getLogger(__name__)


class UpdateNoteInput(BaseModel):
    note_id: str = Field(min_length=1, description="The unique ID of the note to update")
    title: Optional[str] = Field(default=None, description="New title for the note")
    content: Optional[str] = Field(default=None, description="New content for the note")
    category: Optional[str] = Field(default=None, description="New category for the note")


class UpdateNoteTool(BaseTool):

    kind = ToolKind.UPDATE_NOTE
    description = "Update an existing note's title, content, or category."

    def __init__(self, embedder: EmbedderPort, store: NoteStorePort):
        self._embedder = embedder
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return UpdateNoteInput

    async def execute(
        self,
        ctx: SessionContext,
        note_id: str = "",
        title: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
        **kwargs,
    ) -> dict[str, Any]:
        existing = await self._store.get_by_id(note_id)
        if existing is None:
            return {"success": False, "message": f'Note with ID "{note_id}" not found.'}

        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if category is not None:
            changes["category"] = category
        if content is not None:
            changes["content"] = content
            changes["content_plaintext"] = content
        if title is not None or content is not None:
            text = f"{changes.get('title', existing.title)}\n{changes.get('content_plaintext', existing.content_plaintext)}"
            changes["embedding"] = await embed_or_none(self._embedder, text)

        note = await self._store.update(note_id, **changes)
        if note is None:
            return {"success": False, "message": f'Note with ID "{note_id}" not found.'}

        logger.info("[%s] Updated note %s (%s)", ctx.request_id[:8], note_id, ", ".join(changes) or "no changes")
        return {"success": True, "message": f'Updated note "{note.title}".', "noteId": note.id}
