"""
application.services.session_registry - Explicit lifecycle for model sessions.

A session is one accumulating model context plus the conversation memory
and the mutex that belong to it. The registry is created by the
composition root and injected wherever sessions are needed; nothing here is
module-level state.

Sessions are never evicted automatically. They live until
destroy_session() or destroy_all_sessions() is called.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Optional
from uuid import uuid4

from application.services.session_budget import SessionBudgetTracker
from domain.cancellation import CancellationToken
from domain.exceptions import ContextOverflowError, QuotaExceededError, SessionNotFoundError
from domain.models import ConversationTurn, Role, TokenUsage
from domain.ports import LanguageModelPort, ModelReply

if TYPE_CHECKING:
    from agent.memory import ConversationMemory

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_session_id() -> str:
    return f"session_{_now_ms()}_{uuid4().hex[:7]}"


@dataclass(frozen=True)
class SessionMetadata:
    """Snapshot of one session's bookkeeping."""
    session_id: str
    created_at: int
    last_used_at: int
    system_prompt: Optional[str]
    input_usage: int
    input_quota: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "createdAt": self.created_at,
            "lastUsedAt": self.last_used_at,
            "systemPrompt": self.system_prompt,
            "inputUsage": self.input_usage,
            "inputQuota": self.input_quota,
        }


@dataclass
class Session:
    id: str
    memory: ConversationMemory
    system_prompt: Optional[str] = None
    created_at: int = field(default_factory=_now_ms)
    last_used_at: int = field(default_factory=_now_ms)
    context: list[ConversationTurn] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def touch(self) -> None:
        self.last_used_at = _now_ms()


class SessionRegistry:
    """Creates, prompts and destroys sessions."""

    def __init__(
        self,
        llm: LanguageModelPort,
        budget: SessionBudgetTracker,
        memory_factory: Callable[[], ConversationMemory],
        default_system_prompt: Optional[str] = None,
    ):
        self._llm = llm
        self._budget = budget
        self._memory_factory = memory_factory
        self._default_system_prompt = default_system_prompt
        self._sessions: dict[str, Session] = {}

    @property
    def budget(self) -> SessionBudgetTracker:
        return self._budget

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def create_session(
        self,
        system_prompt: Optional[str] = None,
        session_id: Optional[str] = None,
        quota: Optional[int] = None,
    ) -> str:
        session_id = session_id or generate_session_id()
        session = Session(
            id=session_id,
            memory=self._memory_factory(),
            system_prompt=system_prompt or self._default_system_prompt,
        )
        self._sessions[session_id] = session
        self._budget.register(session_id, quota)
        usage = self._budget.get_usage(session_id)
        logger.info("Created session %s (quota %d tokens)", session_id, usage.quota)
        return session_id

    async def get_or_create_session(
        self,
        session_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Return `session_id` if it is live, otherwise create it."""
        if session_id and session_id in self._sessions:
            return session_id
        return await self.create_session(system_prompt=system_prompt, session_id=session_id)

    async def clone_session(self, source_id: str) -> str:
        """New, empty session with the same system prompt as `source_id`."""
        source = self.get(source_id)
        new_id = await self.create_session(system_prompt=source.system_prompt)
        logger.info("Cloned session %s to %s", source_id, new_id)
        return new_id

    def destroy_session(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.warning("Session not found: %s", session_id)
            return False
        session.memory.clear()
        session.context.clear()
        self._budget.forget(session_id)
        logger.info("Destroyed session %s", session_id)
        return True

    def destroy_all_sessions(self) -> int:
        ids = list(self._sessions)
        logger.info("Destroying all %d sessions", len(ids))
        for session_id in ids:
            self.destroy_session(session_id)
        return len(ids)

    # ── Lookup ────────────────────────────────────────────────────────────

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(
                f"Session not found: {session_id}. Create a session first with create_session()."
            )
        return session

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def active_sessions(self) -> list[str]:
        return list(self._sessions)

    def get_session_metadata(self, session_id: str) -> Optional[SessionMetadata]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        usage = self._budget.get_usage(session_id)
        return SessionMetadata(
            session_id=session.id,
            created_at=session.created_at,
            last_used_at=session.last_used_at,
            system_prompt=session.system_prompt,
            input_usage=usage.usage,
            input_quota=usage.quota,
        )

    def get_usage(self, session_id: str) -> TokenUsage:
        self.get(session_id)
        return self._budget.get_usage(session_id)

    def should_clear(self, session_id: str, threshold_percent: Optional[float] = None) -> bool:
        return self._budget.should_clear(session_id, threshold_percent)

    def reset_context(self, session_id: str) -> None:
        """Drop the model context (not the memory) and zero the usage."""
        session = self.get(session_id)
        session.context.clear()
        self._budget.record_usage(session_id, 0)

    # ── Prompting ─────────────────────────────────────────────────────────

    def _before_prompt(self, session: Session) -> None:
        usage = self._budget.get_usage(session.id)
        if usage.percentage >= self._budget.warn_threshold:
            logger.warning(
                "Token limit nearly reached for session %s: %d/%d tokens (%.1f%%). "
                "Consider clearing the session.",
                session.id, usage.usage, usage.quota, usage.percentage,
            )

    def _overflow(self, session: Session) -> QuotaExceededError:
        usage = self._budget.get_usage(session.id)
        logger.error(
            "Provider rejected context for session %s at %d/%d tokens",
            session.id, usage.usage, usage.quota,
        )
        return QuotaExceededError(session.id, usage.usage, usage.quota)

    def _estimate_usage(self, session: Session) -> int:
        texts = [t.text for t in session.context]
        if session.system_prompt:
            texts.append(session.system_prompt)
        return sum(self._llm.count_tokens(text) for text in texts)

    def _after_prompt(
        self, session: Session, prompt: str, answer: str, input_tokens: Optional[int],
    ) -> None:
        session.context.append(ConversationTurn(role=Role.USER, text=prompt))
        session.context.append(ConversationTurn(role=Role.ASSISTANT, text=answer))
        session.touch()
        used = input_tokens if input_tokens is not None else self._estimate_usage(session)
        usage = self._budget.record_usage(session.id, used)
        logger.info(
            "Session %s response received (%d chars, %d/%d tokens used)",
            session.id, len(answer), usage.usage, usage.quota,
        )

    async def prompt_with_session(
        self,
        session_id: str,
        prompt: str,
        signal: Optional[CancellationToken] = None,
    ) -> ModelReply:
        """Send `prompt` within the session's accumulated context.

        Crossing the quota only logs and warns. Raises SessionNotFoundError,
        QuotaExceededError when the provider rejects the context as too
        large, ModelUnavailableError and AgentAbortedError.
        """
        session = self.get(session_id)
        self._before_prompt(session)

        turns = [*session.context, ConversationTurn(role=Role.USER, text=prompt)]
        try:
            reply = await self._llm.complete(turns, system=session.system_prompt, signal=signal)
        except ContextOverflowError as e:
            raise self._overflow(session) from e

        self._after_prompt(session, prompt, reply.text, reply.input_tokens)
        return reply

    async def prompt_stream_with_session(
        self,
        session_id: str,
        prompt: str,
        signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[str]:
        """Streaming variant of prompt_with_session.

        The context and usage are only updated once the stream completes.
        """
        session = self.get(session_id)
        self._before_prompt(session)

        turns = [*session.context, ConversationTurn(role=Role.USER, text=prompt)]
        chunks: list[str] = []
        try:
            async for chunk in self._llm.stream(turns, system=session.system_prompt, signal=signal):
                chunks.append(chunk)
                yield chunk
        except ContextOverflowError as e:
            raise self._overflow(session) from e

        self._after_prompt(session, prompt, "".join(chunks), None)
