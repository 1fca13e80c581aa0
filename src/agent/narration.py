"""
agent.narration - Second generation stage: deterministic reply templates.

No model call happens here. The reply is chosen from the data type of the
extracted fact and a service name found in the query (or, failing that, in
the titles of the referenced notes).
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from domain.models import ConversationTurn, DataType, ExtractedFact, Role

NOT_FOUND_MESSAGE = "I couldn't find that in your notes."
EMPTY_MEMORY_MESSAGE = "We haven't talked about anything yet in this conversation."

# lowercase token -> display name
KNOWN_SERVICES: dict[str, str] = {
    "netflix": "Netflix",
    "github": "GitHub",
    "gitlab": "GitLab",
    "gmail": "Gmail",
    "google": "Google",
    "amazon": "Amazon",
    "aws": "AWS",
    "facebook": "Facebook",
    "instagram": "Instagram",
    "twitter": "Twitter",
    "linkedin": "LinkedIn",
    "spotify": "Spotify",
    "apple": "Apple",
    "icloud": "iCloud",
    "microsoft": "Microsoft",
    "outlook": "Outlook",
    "dropbox": "Dropbox",
    "slack": "Slack",
    "discord": "Discord",
    "reddit": "Reddit",
    "paypal": "PayPal",
    "zoom": "Zoom",
    "steam": "Steam",
}

_TEMPLATES: dict[DataType, tuple[str, str]] = {
    # data type -> (with service, without service)
    DataType.PASSWORD: ("I found your {service} password.", "I found your password."),
    DataType.EMAIL: ("I found your {service} email address.", "I found your email address."),
    DataType.CODE: ("Here are your {service} codes.", "Here are your codes."),
    DataType.URL: ("I found the {service} link.", "I found the link."),
}
_DEFAULT_TEMPLATE = ("Here's what I found in your {service} notes.", "Here's what I found in your notes.")

# "you" as the subject of a reply verb; "what did I ask you" is about the user
_ASKS_FOR_ASSISTANT = re.compile(
    r"\byou (just |last )?(say|said|tell|told|answer|answered|reply|replied|respond|responded|find|found)\b"
    r"|\byour (last |previous )?(answer|response|reply)\b",
    re.IGNORECASE,
)
_ASKS_FOR_RECAP = re.compile(r"\b(talk|discuss|chat|recap|summari[sz]e|conversation)", re.IGNORECASE)


def detect_service(query: str, titles: Sequence[str] = ()) -> Optional[str]:
    """Find a known service name in the query first, then in note titles."""
    for text in (query, *titles):
        lowered = text.lower()
        for token, display in KNOWN_SERVICES.items():
            if token in lowered:
                return display
    return None


def narrate(fact: ExtractedFact, query: str, titles: Sequence[str] = ()) -> str:
    if not fact.data:
        return NOT_FOUND_MESSAGE

    with_service, without_service = _TEMPLATES.get(fact.data_type, _DEFAULT_TEMPLATE)
    service = detect_service(query, titles)
    if service:
        return with_service.format(service=service)
    return without_service


def narrate_from_memory(query: str, turns: Sequence[ConversationTurn]) -> str:
    """Answer a question about the conversation using only remembered turns."""
    if not turns:
        return EMPTY_MEMORY_MESSAGE

    user_turns = [t.text for t in turns if t.role is Role.USER]
    assistant_turns = [t.text for t in turns if t.role is Role.ASSISTANT]

    if _ASKS_FOR_RECAP.search(query) and user_turns:
        asked = ", ".join(f'"{text}"' for text in user_turns)
        return f"So far you asked: {asked}."

    if _ASKS_FOR_ASSISTANT.search(query) and assistant_turns:
        return f'My last answer was: "{assistant_turns[-1]}"'

    if user_turns:
        return f'Your last question was: "{user_turns[-1]}"'
    return EMPTY_MEMORY_MESSAGE
