"""
domain.entities - Persistence-aware types (have IDs, timestamps).

The note store owns these records; the agent core only reads snapshots of
them. No SQL concerns, no DB imports.

Timestamps are epoch milliseconds and are set by the repository
implementations, not by the entities themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class Note:
    """A single user note.

    Attributes:
        id:                Immutable identity, generated at creation.
        title:             Plain-text title.
        content_plaintext: Plain text extracted from the rich-text body. This is
                           what search, extraction, and embeddings work on.
        category:          Free-form category name ("general" by default).
        embedding:         Optional vector. Notes without one are excluded from
                           vector search but still reachable by keyword search.
        content:           Rich-text payload, opaque to the agent core.
    """
    id: str
    title: str = ""
    content_plaintext: str = ""
    category: str = "general"
    embedding: Optional[tuple[float, ...]] = None
    created_at: int = 0
    updated_at: int = 0
    content: str = ""
    source_url: str = ""

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def with_changes(self, **changes) -> Note:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass
class NoteDraft:
    """Fields supplied when creating a note. The repository assigns id and timestamps."""
    title: str
    content_plaintext: str
    category: str = "general"
    embedding: Optional[list[float]] = None
    content: str = ""
    source_url: str = ""
