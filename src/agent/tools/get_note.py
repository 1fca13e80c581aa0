"""
agent.tools.get_note - Fetch one note by id.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool
from agent.tools.formatting import note_to_dict
from application.context import SessionContext
from domain.models import ToolKind
from domain.ports import NoteStorePort


class GetNoteInput(BaseModel):
    note_id: str = Field(min_length=1, description="The unique ID of the note to retrieve")


class GetNoteTool(BaseTool):
    """Retrieve a specific note by its ID."""

    kind = ToolKind.GET_NOTE
    description = (
        "Retrieve a specific note by its ID. "
        "Use ONLY when the user explicitly mentions a note ID."
    )

    def __init__(self, store: NoteStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return GetNoteInput

    async def execute(self, ctx: SessionContext, note_id: str = "", **kwargs) -> dict[str, Any]:
        note = await self._store.get_by_id(note_id.strip())
        if note is None:
            return {"success": False, "message": f'Note with ID "{note_id}" not found.'}
        return {
            "success": True,
            "note": note_to_dict(note, sourceUrl=note.source_url or None),
        }
