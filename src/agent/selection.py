"""
agent.selection - Tool-selection triage and reply parsing.

The selection model is asked to answer with a single line:

    search_notes:<query>
    get_note:<note id>
    list_categories:<anything>
    none

parse_selection() is the only place that reads that reply. Anything else
raises SelectionParseError; the orchestrator treats that as "no tools".
"""

from __future__ import annotations

import re
from typing import Optional

from domain.exceptions import SelectionParseError
from domain.models import ToolCall, ToolKind

_REPLY = re.compile(r"^(search_notes|get_note|list_categories):(.+)$")
_FENCE = re.compile(r"^```[a-zA-Z]*|```$")

# Questions about the conversation itself. These are answered from memory,
# never by searching notes.
_CONVERSATIONAL_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bwhat (did|do) i (just |last )?(ask|say|type|want)\b",
        r"\bwhat (was|is) my (last|previous|first) (question|message|query)\b",
        r"\bwhat did (we|you and i) (just )?(talk|discuss|chat)",
        r"\bwhat did you (just )?(say|tell me|answer|reply)\b",
        r"\bwhat (was|is) your (last|previous) (answer|response|reply)\b",
        r"\b(repeat|recap|summari[sz]e) (that|our conversation|the conversation)\b",
    )
]


def is_conversational_reference(query: str) -> bool:
    """True when the query asks about the conversation rather than the notes."""
    return any(p.search(query) for p in _CONVERSATIONAL_PATTERNS)


def _first_line(reply: str) -> str:
    for line in reply.strip().splitlines():
        line = _FENCE.sub("", line.strip()).strip().strip("`").strip()
        if line:
            return line
    return ""


def parse_selection(reply: str, search_limit: int = 5) -> Optional[ToolCall]:
    """Parse a selection reply into a ToolCall, or None for "none".

    Raises SelectionParseError for empty replies and anything outside the
    reply grammar.
    """
    line = _first_line(reply or "")
    if not line:
        raise SelectionParseError("Empty tool selection reply")

    if line.lower() == "none":
        return None

    match = _REPLY.match(line)
    if match is None:
        raise SelectionParseError(f"Unrecognised tool selection reply: {line[:80]!r}")

    kind = ToolKind(match.group(1))
    param = match.group(2).strip().strip("\"'").strip()
    if not param:
        raise SelectionParseError(f"Tool selection for {kind.value} has an empty parameter")

    if kind is ToolKind.SEARCH_NOTES:
        return ToolCall(kind.value, {"query": param, "limit": search_limit})
    if kind is ToolKind.GET_NOTE:
        return ToolCall(kind.value, {"note_id": param})
    return ToolCall(kind.value, {})
