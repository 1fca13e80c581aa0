"""
application.services.category_suggester - Rank existing categories for a new note.

The note text and every category name are embedded concurrently, then the
categories are ranked by cosine similarity to the note.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from domain.ports import EmbedderPort
from domain.ranking import rank_vectors

logger = logging.getLogger(__name__)


class CategorySuggester:

    def __init__(self, embedder: EmbedderPort):
        self._embedder = embedder

    async def suggest(
        self, text: str, categories: Sequence[str], k: int = 3,
    ) -> list[tuple[str, float]]:
        """Return up to k (category, score) pairs, best first."""
        categories = [c for c in dict.fromkeys(categories) if c]
        if not text.strip() or not categories:
            return []

        text_vector, category_vectors = await asyncio.gather(
            self._embedder.embed(text),
            self._embedder.embed_batch(categories),
        )

        ranked = rank_vectors(text_vector, category_vectors, k)
        suggestions = [(categories[i], score) for i, score in ranked]
        logger.debug("Category suggestions: %s", suggestions)
        return suggestions
