"""
agent.tools.search_notes - Hybrid note search tool.

Semantic results come first: the query is embedded and ranked against the
note store by cosine similarity. Keyword matches the vector pass missed are
appended after them with similarity "keyword_match". When the embedding
provider is down the tool still answers from keyword matches alone.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool
from agent.tools.formatting import note_to_dict
from application.context import SessionContext
from domain.exceptions import EmbeddingUnavailableError
from domain.models import ToolKind
from domain.ports import EmbedderPort, NoteStorePort

logger = logging.getLogger(__name__)

KEYWORD_MATCH = "keyword_match"


class SearchNotesInput(BaseModel):
    """Input schema for the search_notes tool."""
    query: str = Field(min_length=1, description="The search query to find relevant notes")
    limit: int = Field(default=5, ge=1, le=50, description="Maximum number of results to return")


class SearchNotesTool(BaseTool):
    """Search through notes using semantic similarity and keywords."""

    kind = ToolKind.SEARCH_NOTES
    description = (
        "Search through notes using semantic similarity and keywords. "
        "Use when the user wants to find, retrieve or look up anything stored "
        "in their notes (passwords, emails, codes, links)."
    )

    def __init__(
        self,
        embedder: EmbedderPort,
        store: NoteStorePort,
        min_similarity: Optional[float] = None,
    ):
        self._embedder = embedder
        self._store = store
        self._min_similarity = min_similarity

    def get_schema(self) -> type[BaseModel]:
        return SearchNotesInput

    async def execute(self, ctx: SessionContext, query: str = "", limit: int = 5, **kwargs) -> dict[str, Any]:
        logger.info("[%s] Hybrid search for %r (limit=%d)", ctx.request_id[:8], query, limit)

        merged: dict[str, dict[str, Any]] = {}

        try:
            vector = await self._embedder.embed(query)
        except EmbeddingUnavailableError as e:
            logger.warning("Embedding unavailable, falling back to keyword search: %s", e)
        else:
            for scored in await self._store.query_by_similarity(vector, limit):
                if self._min_similarity is not None and scored.score < self._min_similarity:
                    continue
                merged[scored.note.id] = note_to_dict(
                    scored.note, similarity=round(scored.score, 4),
                )

        for note in await self._store.search_by_text(query, limit):
            if note.id not in merged:
                merged[note.id] = note_to_dict(note, similarity=KEYWORD_MATCH)

        notes = list(merged.values())[:limit]
        logger.info("[%s] search_notes returned %d note(s)", ctx.request_id[:8], len(notes))

        if not notes:
            return {"success": True, "notes": [], "message": "No notes found."}
        return {
            "success": True,
            "notes": notes,
            "message": f"Found {len(notes)} relevant note(s).",
        }
