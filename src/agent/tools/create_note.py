"""
agent.tools.create_note - Store a new note.

Mutation tool: only active for writable contexts. The plain text is
embedded so the note is reachable by vector search; when the embedder is
down the note is stored without a vector and stays reachable by keyword.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool
from application.context import SessionContext
from domain.entities import NoteDraft
from domain.exceptions import EmbeddingUnavailableError
from domain.models import ToolKind
from domain.ports import EmbedderPort, NoteStorePort

logger = logging.getLogger(__name__)


async def embed_or_none(embedder: EmbedderPort, text: str) -> Optional[list[float]]:
    """Embed `text`, or return None when the embedding provider is unavailable."""
    try:
        return await embedder.embed(text)
    except EmbeddingUnavailableError as e:
        logger.warning("Storing note without embedding: %s", e)
        return None


class CreateNoteInput(BaseModel):
    title: str = Field(min_length=1, description="The title of the new note")
    content: str = Field(description="The plain-text content of the note")
    category: str = Field(default="general", description="The category for the note")


class CreateNoteTool(BaseTool):

    kind = ToolKind.CREATE_NOTE
    description = "Create a new note with a title, content and optional category."

    def __init__(self, embedder: EmbedderPort, store: NoteStorePort):
        self._embedder = embedder
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return CreateNoteInput

    async def execute(
        self,
        ctx: SessionContext,
        title: str = "",
        content: str = "",
        category: str = "general",
        **kwargs,
    ) -> dict[str, Any]:
        embedding = await embed_or_none(self._embedder, f"{title}\n{content}")
        note = await self._store.create(NoteDraft(
            title=title,
            content_plaintext=content,
            category=category or "general",
            embedding=embedding,
        ))
        logger.info("[%s] Created note %s", ctx.request_id[:8], note.id)
        return {
            "success": True,
            "message": f'Created note "{note.title}" in category "{note.category}".',
            "noteId": note.id,
        }
