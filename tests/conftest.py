import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import time
from collections import deque
from dataclasses import replace
from typing import Optional, Sequence

import pytest

from domain.entities import Note, NoteDraft
from domain.exceptions import EmbeddingUnavailableError
from domain.models import ScoredNote
from domain.ports import ModelReply
from domain.ranking import rank
from factory import ServiceFactory
from infrastructure.config import Settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


# Four-dimensional toy embedding space shared by the stubs and the tests.
KEYWORD_VECTORS = {
    "netflix": [1.0, 0.0, 0.0, 0.0],
    "streaming": [1.0, 0.1, 0.0, 0.0],
    "github": [0.0, 1.0, 0.0, 0.0],
    "work": [0.0, 1.0, 0.1, 0.0],
    "email": [0.0, 0.0, 1.0, 0.0],
    "finance": [0.0, 0.0, 1.0, 0.2],
}
FALLBACK_VECTOR = [0.0, 0.0, 0.0, 1.0]


class StubEmbedder:
    """Embedder stub: sums the vectors of known keywords found in the text."""

    def __init__(self, available: bool = True):
        self.available = available
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if not self.available:
            raise EmbeddingUnavailableError("stub embedder is offline")
        lowered = text.lower()
        vector = [0.0, 0.0, 0.0, 0.0]
        hit = False
        for keyword, vec in KEYWORD_VECTORS.items():
            if keyword in lowered:
                hit = True
                vector = [a + b for a, b in zip(vector, vec)]
        return vector if hit else list(FALLBACK_VECTOR)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [await self.embed(t) for t in texts]


class ScriptedLanguageModel:
    """Language model stub that answers from a queue of scripted replies.

    Items may be plain strings, ModelReply objects or exceptions to raise.
    When the queue runs dry every call answers "none".
    """

    def __init__(self, replies: Sequence = ()):
        self.replies = deque(replies)
        self.calls: list[dict] = []

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    async def complete(self, prompt, *, system=None, temperature=None, signal=None) -> ModelReply:
        if signal is not None:
            signal.raise_if_cancelled()
        self.calls.append({"prompt": prompt, "system": system, "temperature": temperature})
        item = self.replies.popleft() if self.replies else "none"
        if isinstance(item, Exception):
            raise item
        if isinstance(item, ModelReply):
            return item
        return ModelReply(text=item)

    async def stream(self, prompt, *, system=None, signal=None):
        reply = await self.complete(prompt, system=system, signal=signal)
        for word in reply.text.split(" "):
            yield word + " "

    def count_tokens(self, text: str) -> int:
        return len(text) // 4


class InMemoryNoteStore:
    """NoteStorePort backed by a dict, for pipeline tests."""

    def __init__(self):
        self.notes: dict[str, Note] = {}
        self._counter = 0
        self.fail_reads = False

    def add(self, title: str, content: str, category: str = "general",
            embedding: Optional[Sequence[float]] = None) -> Note:
        self._counter += 1
        now = int(time.time() * 1000) + self._counter
        note = Note(
            id=f"note_{self._counter}",
            title=title,
            content_plaintext=content,
            category=category,
            embedding=tuple(embedding) if embedding else None,
            created_at=now,
            updated_at=now,
            content=content,
        )
        self.notes[note.id] = note
        return note

    def _check(self) -> None:
        if self.fail_reads:
            raise RuntimeError("store offline")

    async def get_by_id(self, note_id: str) -> Optional[Note]:
        self._check()
        return self.notes.get(note_id)

    async def list_notes(self) -> list[Note]:
        return sorted(self.notes.values(), key=lambda n: n.updated_at, reverse=True)

    async def list_categories(self) -> list[str]:
        return sorted({n.category for n in self.notes.values()})

    async def query_by_similarity(self, vector, limit) -> list[ScoredNote]:
        self._check()
        return rank(vector, [n for n in self.notes.values() if n.embedding], limit)

    async def search_by_text(self, query: str, limit: int = 10) -> list[Note]:
        self._check()
        needle = query.lower()
        hits = [
            n for n in self.notes.values()
            if needle in n.title.lower() or needle in n.content_plaintext.lower()
        ]
        return hits[:limit]

    async def create(self, draft: NoteDraft) -> Note:
        return self.add(draft.title, draft.content_plaintext, draft.category, draft.embedding)

    async def update(self, note_id: str, **changes) -> Optional[Note]:
        note = self.notes.get(note_id)
        if note is None:
            return None
        if changes.get("embedding") is not None:
            changes["embedding"] = tuple(changes["embedding"])
        note = note.with_changes(**changes)
        self.notes[note_id] = note
        return note

    async def delete(self, note_id: str) -> bool:
        return self.notes.pop(note_id, None) is not None


@pytest.fixture
def embedder():
    return StubEmbedder()


@pytest.fixture
def llm():
    return ScriptedLanguageModel()


@pytest.fixture
def store():
    store = InMemoryNoteStore()
    store.add("Netflix", "Netflix password: S3cr3t!", "streaming", KEYWORD_VECTORS["netflix"])
    store.add("GitHub", "GitHub email: dev@example.com", "work", KEYWORD_VECTORS["github"])
    return store


@pytest.fixture
def settings(tmp_path):
    return Settings(project_root=tmp_path, db_path=str(tmp_path / "notes.db"))


@pytest.fixture
def make_factory(settings, llm, embedder, store):
    """Build an initialized factory wired to the stubs; overrides go to Settings."""

    async def _make(**overrides) -> ServiceFactory:
        config = replace(settings, **overrides)
        factory = ServiceFactory(config, llm=llm, embedder=embedder, note_store=store)
        await factory.initialize()
        return factory

    return _make


@pytest.fixture
async def factory(make_factory):
    factory = await make_factory()
    yield factory
    await factory.shutdown()
