"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the agent needs without specifying HOW. Infrastructure
modules provide concrete implementations. Application services and the
agent depend only on these protocols, never on concrete classes.

Using typing.Protocol (structural typing) instead of ABC - any class that
implements the methods satisfies the port without explicit inheritance.
The test stubs in tests/conftest.py rely on that.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, Sequence, Union, runtime_checkable

from domain.cancellation import CancellationToken
from domain.entities import Note, NoteDraft
from domain.models import ConversationTurn, ScoredNote


# ---------------------------------------------------------------------------
# Model collaborators
# ---------------------------------------------------------------------------

@runtime_checkable
class EmbedderPort(Protocol):
    """Turn text into fixed-dimension vectors.

    Both methods may raise EmbeddingUnavailableError.
    """

    async def embed(self, text: str) -> list[float]: ...

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]: ...


@dataclass(frozen=True)
class ModelReply:
    """Text produced by one language-model call.

    input_tokens is the provider-reported prompt size of the call, or None
    when the provider does not report usage.
    """
    text: str
    input_tokens: Optional[int] = None


Prompt = Union[str, Sequence[ConversationTurn]]


@runtime_checkable
class LanguageModelPort(Protocol):
    """Single-shot and streaming text generation.

    `system` is an optional system instruction placed before the prompt.
    Implementations raise ModelUnavailableError when the provider is not
    ready, and AgentAbortedError when `signal` fires.
    """

    async def complete(
        self,
        prompt: Prompt,
        *,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        signal: Optional[CancellationToken] = None,
    ) -> ModelReply: ...

    def stream(
        self,
        prompt: Prompt,
        *,
        system: Optional[str] = None,
        signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[str]: ...

    def count_tokens(self, text: str) -> int: ...


# ---------------------------------------------------------------------------
# Note store
# ---------------------------------------------------------------------------

@runtime_checkable
class NoteStorePort(Protocol):
    """Read-many/write-rare access to the user's notes.

    Read operations return fresh snapshots on every call; callers must not
    assume exclusive access.
    """

    async def get_by_id(self, note_id: str) -> Optional[Note]: ...

    async def list_notes(self) -> list[Note]: ...

    async def list_categories(self) -> list[str]: ...

    async def query_by_similarity(
        self, vector: Sequence[float], limit: int,
    ) -> list[ScoredNote]: ...

    async def search_by_text(self, query: str, limit: int = 10) -> list[Note]: ...

    async def create(self, draft: NoteDraft) -> Note: ...

    async def update(self, note_id: str, **changes) -> Optional[Note]: ...

    async def delete(self, note_id: str) -> bool: ...
