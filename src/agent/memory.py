"""
agent.memory - Bounded per-session conversation memory.

Stores messages as a plain list[BaseMessage] holding at most
2 * max_pairs entries. Trimming always drops from the head, so the
survivors are exactly the most recent turns in chronological order.
Memory lives for the process only; nothing is persisted.
"""

from __future__ import annotations

import logging

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from domain.models import ConversationTurn, Role

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 100


class ConversationMemory:
    """Per-session conversation memory.

    NOT global - each session gets its own instance, owned by the
    SessionRegistry.
    """

    def __init__(self, max_pairs: int = 10):
        if max_pairs < 1:
            raise ValueError("max_pairs must be at least 1")
        self._max_pairs = max_pairs
        self._messages: list[BaseMessage] = []

    @property
    def max_pairs(self) -> int:
        return self._max_pairs

    @property
    def max_messages(self) -> int:
        return self._max_pairs * 2

    @property
    def messages(self) -> list[BaseMessage]:
        """Current history as LangChain messages, oldest first."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def load(self) -> list[ConversationTurn]:
        turns = []
        for msg in self._messages:
            role = Role.USER if isinstance(msg, HumanMessage) else Role.ASSISTANT
            turns.append(ConversationTurn(role=role, text=str(msg.content)))
        return turns

    def save(self, user_text: str, assistant_text: str) -> None:
        """Append one (user, assistant) pair, then trim to the cap."""
        self._messages.append(HumanMessage(content=user_text))
        self._messages.append(AIMessage(content=assistant_text))
        self._trim()

    def _trim(self) -> None:
        if len(self._messages) > self.max_messages:
            dropped = len(self._messages) - self.max_messages
            self._messages = self._messages[-self.max_messages:]
            logger.debug("Trimmed %d old messages from memory", dropped)

    def clear(self) -> None:
        """Clear all conversation history."""
        self._messages.clear()

    def summary(self) -> str:
        """Numbered one-line-per-message digest used by the /history command."""
        if not self._messages:
            return "No conversation history yet."

        lines = []
        for i, turn in enumerate(self.load(), start=1):
            speaker = "User" if turn.role is Role.USER else "AI"
            lines.append(f"{i}. {speaker}: {turn.text[:_PREVIEW_CHARS]}...")
        return "\n".join(lines)
