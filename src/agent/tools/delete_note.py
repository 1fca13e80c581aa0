"""
agent.tools.delete_note - Remove a note. Mutation tool.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool
from application.context import SessionContext
from domain.models import ToolKind
from domain.ports import NoteStorePort

logger = logging.getLogger(__name__)


class DeleteNoteInput(BaseModel):
    note_id: str = Field(min_length=1, description="The unique ID of the note to delete")


class DeleteNoteTool(BaseTool):

    kind = ToolKind.DELETE_NOTE
    description = "Delete a note by its ID."

    def __init__(self, store: NoteStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return DeleteNoteInput

    async def execute(self, ctx: SessionContext, note_id: str = "", **kwargs) -> dict[str, Any]:
        if not await self._store.delete(note_id):
            return {"success": False, "message": f'Note with ID "{note_id}" not found.'}
        logger.info("[%s] Deleted note %s", ctx.request_id[:8], note_id)
        return {"success": True, "message": f"Deleted note {note_id}."}
