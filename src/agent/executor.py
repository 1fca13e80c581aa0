"""
agent.executor - Agent execution engine.

One AgentExecutor is bound to one session. A run moves through

    IDLE -> SELECTING_TOOLS -> EXECUTING_TOOLS -> EXTRACTING -> NARRATING -> DONE

and lands in ERROR on any failure. Runs on the same session are serialized
by the session's lock. Memory is written only when a run reaches DONE, so
a failed or cancelled run leaves no partial turn behind.

No component construction here; factory.py injects everything.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import AsyncIterator, Optional, Sequence

from agent.extraction import Extractor
from agent.narration import narrate, narrate_from_memory
from agent.prompt import build_selection_prompt
from agent.selection import is_conversational_reference, parse_selection
from agent.tools.base import ToolResult
from agent.tools.executor import ToolExecutor
from application.context import SessionContext
from application.services.session_registry import Session, SessionRegistry
from domain.cancellation import CancellationToken
from domain.exceptions import (
    AgentAbortedError,
    ContextOverflowError,
    ModelUnavailableError,
    QuotaExceededError,
    SelectionParseError,
)
from domain.models import (
    ActionType,
    AgentResponse,
    AgentState,
    DataType,
    ExtractedFact,
    SuggestedAction,
    ToolCall,
)

logger = logging.getLogger(__name__)

HISTORY_COMMAND = "/history"
CLEAR_COMMAND = "/clear"
CLEARED_MESSAGE = "✅ Conversation history cleared. Starting fresh!"
SEARCHING_STATUS = "🔍 Searching your notes...\n\n"

_ABORTED_MESSAGE = "The request was cancelled."
_UNAVAILABLE_MESSAGE = (
    "The language model isn't available right now, so I couldn't search your notes. "
    "Please try again in a moment."
)
_QUOTA_MESSAGE = (
    "This conversation no longer fits in the language model's context. "
    "Clear the session to start fresh."
)


class AgentExecutor:
    """Runs selection, tool execution and two-stage generation for one session.

    Constructed by factory.py with all dependencies injected.
    """

    def __init__(
        self,
        session_id: Optional[str],
        sessions: SessionRegistry,
        tools: ToolExecutor,
        extractor: Extractor,
        read_only: bool = True,
        search_limit: int = 5,
    ):
        self._session_id = session_id
        self._sessions = sessions
        self._tools = tools
        self._extractor = extractor
        self._read_only = read_only
        self._search_limit = search_limit
        self.state = AgentState.IDLE

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    async def _session(self) -> Session:
        self._session_id = await self._sessions.get_or_create_session(self._session_id)
        return self._sessions.get(self._session_id)

    def _transition(self, ctx: SessionContext, state: AgentState) -> None:
        logger.debug("[%s] %s -> %s", ctx.request_id[:8], self.state.value, state.value)
        self.state = state

    # ── UI-facing operations ──────────────────────────────────────────────

    async def run(self, query: str, signal: Optional[CancellationToken] = None) -> AgentResponse:
        """Answer one query. Never raises for documented failure modes.

        An asyncio.CancelledError from the event loop is not caught.
        """
        session = await self._session()
        ctx = SessionContext(session_id=session.id, read_only=self._read_only)
        ctx.new_request(signal)
        query = query.strip()

        async with session.lock:
            command = self._debug_command(query, session)
            if command is not None:
                return AgentResponse.message(command)

            self.state = AgentState.IDLE
            logger.info("[%s] Agent processing (session=%s): %s", ctx.request_id[:8], session.id, query[:80])
            try:
                response = await self._respond(ctx, query, session)
            except AgentAbortedError as e:
                logger.info("[%s] Run aborted: %s", ctx.request_id[:8], e)
                return self._fail(ctx, _ABORTED_MESSAGE, "aborted")
            except (QuotaExceededError, ContextOverflowError) as e:
                logger.warning("[%s] %s", ctx.request_id[:8], e)
                return self._fail(ctx, _QUOTA_MESSAGE, "quota_exceeded")
            except ModelUnavailableError as e:
                logger.error("[%s] Model unavailable: %s", ctx.request_id[:8], e)
                return self._fail(ctx, _UNAVAILABLE_MESSAGE, "model_unavailable")
            except Exception as e:
                logger.exception("[%s] Agent run failed", ctx.request_id[:8])
                return self._fail(ctx, f"I encountered an error: {e}. Please try again.", "internal")

            self._transition(ctx, AgentState.DONE)
            session.memory.save(query, response.narrative)
            return response

    async def run_streaming(
        self, query: str, signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[str]:
        """Same pipeline as run(), yielding only narrative text.

        A status chunk is yielded before tools execute. Errors end the
        stream with an explanatory chunk instead of raising.
        """
        session = await self._session()
        ctx = SessionContext(session_id=session.id, read_only=self._read_only)
        ctx.new_request(signal)
        query = query.strip()

        async with session.lock:
            command = self._debug_command(query, session)
            if command is not None:
                yield command
                return

            self.state = AgentState.IDLE
            try:
                if is_conversational_reference(query):
                    narrative = self._narrate_from_memory(ctx, query, session).narrative
                else:
                    calls = await self._select_tools(ctx, query)
                    if calls:
                        yield SEARCHING_STATUS
                    results = await self._execute_tools(ctx, calls)
                    narrative = (await self._generate(ctx, query, results)).narrative
            except AgentAbortedError as e:
                logger.info("[%s] Stream aborted: %s", ctx.request_id[:8], e)
                self._transition(ctx, AgentState.ERROR)
                yield f"\n\n{_ABORTED_MESSAGE}"
                return
            except Exception as e:
                logger.exception("[%s] Streaming run failed", ctx.request_id[:8])
                self._transition(ctx, AgentState.ERROR)
                yield f"\n\nI encountered an error: {e}"
                return

            yield narrative
            self._transition(ctx, AgentState.DONE)
            session.memory.save(query, narrative)

    async def clear_memory(self) -> None:
        session = await self._session()
        async with session.lock:
            self._forget(session)
        logger.info("Conversation memory and context cleared for session %s", session.id)

    async def get_history_summary(self) -> str:
        session = await self._session()
        return session.memory.summary()

    # ── Pipeline stages ───────────────────────────────────────────────────

    def _debug_command(self, query: str, session: Session) -> Optional[str]:
        command = query.lower()
        if command == HISTORY_COMMAND:
            return session.memory.summary()
        if command == CLEAR_COMMAND:
            self._forget(session)
            return CLEARED_MESSAGE
        return None

    def _forget(self, session: Session) -> None:
        """Drop the conversation memory together with the model context it paid for."""
        session.memory.clear()
        self._sessions.reset_context(session.id)

    async def _respond(self, ctx: SessionContext, query: str, session: Session) -> AgentResponse:
        if is_conversational_reference(query):
            response = self._narrate_from_memory(ctx, query, session)
        else:
            calls = await self._select_tools(ctx, query)
            results = await self._execute_tools(ctx, calls)
            response = await self._generate(ctx, query, results)

        warnings = tuple(self._sessions.budget.warnings(session.id))
        if warnings:
            response = replace(response, warnings=warnings)
        return response

    def _narrate_from_memory(self, ctx: SessionContext, query: str, session: Session) -> AgentResponse:
        logger.info("[%s] Conversational reference, skipping tool selection", ctx.request_id[:8])
        self._transition(ctx, AgentState.NARRATING)
        return AgentResponse.message(narrate_from_memory(query, session.memory.load()))

    async def _select_tools(self, ctx: SessionContext, query: str) -> list[ToolCall]:
        self._transition(ctx, AgentState.SELECTING_TOOLS)
        prompt = build_selection_prompt(self._tools.registry.active(ctx.read_only), query)
        reply = await self._sessions.prompt_with_session(ctx.session_id, prompt, ctx.signal)

        try:
            call = parse_selection(reply.text, self._search_limit)
        except SelectionParseError as e:
            logger.warning("[%s] Tool selection unparseable, skipping retrieval: %s", ctx.request_id[:8], e)
            return []

        logger.info("[%s] Tool selected: %s", ctx.request_id[:8], call.name if call else "none")
        return [call] if call else []

    async def _execute_tools(self, ctx: SessionContext, calls: Sequence[ToolCall]) -> list[ToolResult]:
        self._transition(ctx, AgentState.EXECUTING_TOOLS)
        if not calls:
            return []
        return await self._tools.execute(calls, ctx)

    async def _generate(
        self, ctx: SessionContext, query: str, results: Sequence[ToolResult],
    ) -> AgentResponse:
        self._transition(ctx, AgentState.EXTRACTING)
        fact = await self._extractor.extract(query, results, ctx.signal)

        self._transition(ctx, AgentState.NARRATING)
        note_ids, titles = collect_references(results)
        narrative = narrate(fact, query, titles)
        logger.info(
            "[%s] Extracted %s (type=%s, confidence=%.2f) from %d note(s)",
            ctx.request_id[:8], "data" if fact.data else "nothing",
            fact.data_type.value, fact.confidence, len(note_ids),
        )

        return AgentResponse(
            extracted_data=fact.data,
            reference_note_ids=tuple(note_ids),
            narrative=narrative,
            data_type=fact.data_type,
            confidence=fact.confidence,
            suggested_actions=tuple(build_actions(fact, note_ids)),
        )

    def _fail(self, ctx: SessionContext, narrative: str, error: str) -> AgentResponse:
        self._transition(ctx, AgentState.ERROR)
        response = AgentResponse.failure(narrative, error)
        warnings = tuple(self._sessions.budget.warnings(ctx.session_id))
        return replace(response, warnings=warnings) if warnings else response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def collect_references(results: Sequence[ToolResult]) -> tuple[list[str], list[str]]:
    """Note ids (in result order, without duplicates) and titles from tool results."""
    ids: list[str] = []
    titles: list[str] = []
    for result in results:
        if not result.ok or not isinstance(result.result, dict):
            continue
        notes = list(result.result.get("notes") or [])
        if isinstance(result.result.get("note"), dict):
            notes.append(result.result["note"])
        for note in notes:
            note_id = note.get("id")
            if note_id and note_id not in ids:
                ids.append(note_id)
                titles.append(note.get("title", ""))
    return ids, titles


def build_actions(fact: ExtractedFact, note_ids: Sequence[str]) -> list[SuggestedAction]:
    actions: list[SuggestedAction] = []

    if fact.data:
        actions.append(SuggestedAction(ActionType.COPY, "Copy to clipboard", fact.data))
        if fact.data_type in (DataType.EMAIL, DataType.PASSWORD):
            actions.append(SuggestedAction(ActionType.FILL, f"Fill {fact.data_type.value}", fact.data))
        if fact.data_type is DataType.URL:
            actions.append(SuggestedAction(ActionType.OPEN_LINK, "Open link", fact.data))

    for index, note_id in enumerate(note_ids, start=1):
        actions.append(SuggestedAction(ActionType.VIEW_NOTE, f"View note {index}", note_id))

    return actions
