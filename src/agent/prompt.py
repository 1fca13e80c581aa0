"""
agent.prompt - Prompt templates for the note agent.

The selection prompt is built from the tools that are actually available,
so read-only sessions never see mutation tools. Only read tools can be
chosen by selection; mutation tools are reached through explicit commands.
"""

from __future__ import annotations

from typing import Sequence

from agent.tools.base import BaseTool

AGENT_SYSTEM_PROMPT = """You are MindKeep, a private assistant for the user's own notes.
The notes live on the user's device and belong to them. You help them find
passwords, emails, recovery codes, links and anything else they saved.
Answer briefly and never invent information that is not in their notes."""

_SELECTABLE = ("search_notes", "get_note", "list_categories")


def build_selection_prompt(tools: Sequence[BaseTool], query: str) -> str:
    """Build the tool-selection instruction for one query.

    Args:
        tools: The active tools for the session.
        query: The user's verbatim query.

    Returns:
        A prompt whose only valid answers are "tool_name:parameter" or "none".
    """
    lines = [
        f"- {t.name}: {t.description}"
        for t in tools
        if t.name in _SELECTABLE
    ]
    tool_list = "\n".join(lines) or "- (no tools available)"

    return f"""Decide whether a tool is needed to answer the user's query.

Available tools:
{tool_list}
- none: ONLY for greetings, thanks, or questions about this conversation itself.

Respond with EXACTLY ONE line in one of these forms and nothing else:
search_notes:<short keyword query>
get_note:<note id>
list_categories:all
none

Rules:
- The user asks to FIND, GET, SHOW or LOOK UP anything (passwords, emails, codes, links) -> search_notes
- Strip conversational filler from the search query.
- Use get_note ONLY when the user gives a note ID.

Examples:
Query: "can u find my netflix password?" -> search_notes:netflix password
Query: "what's my email?" -> search_notes:email
Query: "show me recovery codes" -> search_notes:recovery codes
Query: "what categories do I have?" -> list_categories:all
Query: "show me note note_1700000000000_ab12cd" -> get_note:note_1700000000000_ab12cd
Query: "hello how are you" -> none

Query: "{query}"
Answer:"""


def build_extraction_prompt(query: str, results_json: str) -> str:
    """Build the extraction instruction. It carries no conversational context."""
    return f"""You extract one exact value from the user's own notes.

USER QUERY: "{query}"

MATCHED NOTES (JSON):
```json
{results_json}
```

Instructions:
1. Work out exactly what the user wants (a password, an email, codes, a link, ...).
2. Find it in the matched notes.
3. Reply with ONLY the raw value, copied exactly. For several related values
   (e.g. recovery codes) reply with all of them separated by commas.
4. If the value is not in the notes, reply with exactly: null

Do not add any other words, quotes, labels or explanations.

Example:
Query: "find my netflix password", note says "Netflix Password: Str3am!ng#Fun"
Reply: Str3am!ng#Fun"""
