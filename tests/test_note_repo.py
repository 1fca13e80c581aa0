import pytest

from domain.entities import NoteDraft
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.note_repo import SQLiteNoteRepository, generate_note_id


@pytest.fixture
async def repo(tmp_path):
    connection = AsyncSQLiteConnection(str(tmp_path / "notes.db"))
    await run_migrations(connection)
    await run_migrations(connection)
    return SQLiteNoteRepository(connection)


def test_note_ids_are_unique():
    assert generate_note_id(1700000000000).startswith("note_1700000000000_")
    assert generate_note_id(1) != generate_note_id(1)


@pytest.mark.anyio
async def test_create_and_read_back(repo):
    note = await repo.create(NoteDraft(
        title="Netflix", content_plaintext="password: S3cr3t!",
        category="streaming", embedding=[1.0, 0.0],
    ))
    loaded = await repo.get_by_id(note.id)
    assert loaded == note
    assert loaded.embedding == (1.0, 0.0)
    assert await repo.get_by_id("missing") is None


@pytest.mark.anyio
async def test_similarity_skips_notes_without_embeddings(repo):
    close = await repo.create(NoteDraft("Netflix", "pw", embedding=[1.0, 0.0]))
    far = await repo.create(NoteDraft("GitHub", "email", embedding=[0.0, 1.0]))
    await repo.create(NoteDraft("Plain", "no vector"))

    ranked = await repo.query_by_similarity([1.0, 0.1], limit=5)
    assert [s.note.id for s in ranked] == [close.id, far.id]


@pytest.mark.anyio
async def test_text_search_is_case_insensitive(repo):
    note = await repo.create(NoteDraft("Bank", "IBAN DE00 1234"))
    await repo.create(NoteDraft("Other", "nothing here"))
    assert [n.id for n in await repo.search_by_text("iban")] == [note.id]
    assert await repo.search_by_text("   ") == []


@pytest.mark.anyio
async def test_categories_are_distinct_and_sorted(repo):
    for category in ("work", "streaming", "work"):
        await repo.create(NoteDraft("t", "c", category=category))
    assert await repo.list_categories() == ["streaming", "work"]


@pytest.mark.anyio
async def test_update_and_delete(repo):
    note = await repo.create(NoteDraft("Old", "content"))
    updated = await repo.update(note.id, title="New", embedding=[0.5, 0.5])
    assert updated.title == "New"
    assert updated.embedding == (0.5, 0.5)
    assert await repo.update("missing", title="x") is None

    with pytest.raises(ValueError):
        await repo.update(note.id, created_at=0)

    assert await repo.delete(note.id) is True
    assert await repo.delete(note.id) is False
    assert await repo.list_notes() == []
