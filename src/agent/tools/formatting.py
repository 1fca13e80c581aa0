"""
agent.tools.formatting - Shape notes into the JSON payloads tools return.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from domain.entities import Note

_WHITESPACE_LINES = re.compile(r"\n\s+\n")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def clean_content(text: str) -> str:
    """Normalise note text before it reaches a model.

    Literal "\\n" sequences become real newlines, whitespace-only lines are
    dropped, runs of 3+ newlines collapse to 2, and the result is stripped.
    """
    text = text.replace("\\n", "\n")
    text = _WHITESPACE_LINES.sub("\n\n", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def format_date(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).date().isoformat()


def note_to_dict(note: Note, **extra: Any) -> dict[str, Any]:
    payload = {
        "id": note.id,
        "title": note.title,
        "content": clean_content(note.content_plaintext),
        "category": note.category,
    }
    payload.update(extra)
    payload["createdAt"] = format_date(note.created_at)
    payload["updatedAt"] = format_date(note.updated_at)
    return payload
