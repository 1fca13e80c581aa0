import pytest

from agent.tools.create_note import CreateNoteTool
from agent.tools.delete_note import DeleteNoteTool
from agent.tools.executor import ToolExecutor
from agent.tools.formatting import clean_content
from agent.tools.get_note import GetNoteTool
from agent.tools.list_categories import ListCategoriesTool
from agent.tools.registry import ToolRegistry
from agent.tools.search_notes import KEYWORD_MATCH, SearchNotesTool
from agent.tools.update_note import UpdateNoteTool
from application.context import SessionContext
from domain.cancellation import CancellationToken
from domain.exceptions import AgentAbortedError, UnknownToolError
from domain.models import ToolCall, ToolKind


@pytest.fixture
def registry(embedder, store):
    registry = ToolRegistry()
    registry.register(SearchNotesTool(embedder, store))
    registry.register(GetNoteTool(store))
    registry.register(ListCategoriesTool(store))
    registry.register(CreateNoteTool(embedder, store))
    registry.register(UpdateNoteTool(embedder, store))
    registry.register(DeleteNoteTool(store))
    return registry


@pytest.fixture
def executor(registry):
    return ToolExecutor(registry)


def test_read_only_contexts_never_see_mutation_tools(registry):
    assert registry.names(read_only=True) == ["search_notes", "get_note", "list_categories"]
    assert "create_note" in registry.names(read_only=False)
    with pytest.raises(UnknownToolError):
        registry.get(ToolKind.DELETE_NOTE, read_only=True)


def test_search_schema_is_described(registry):
    schema = registry.get(ToolKind.SEARCH_NOTES).params_schema()
    assert schema["query"]["required"] is True
    assert schema["limit"]["required"] is False


@pytest.mark.anyio
async def test_partial_failure_keeps_order_and_continues(executor):
    ctx = SessionContext(session_id="s1")
    calls = [
        ToolCall("search_notes", {"query": "netflix", "limit": 3}),
        ToolCall("get_note", {}),
        ToolCall("teleport", {}),
        ToolCall("list_categories", {}),
    ]
    results = await executor.execute(calls, ctx)

    assert [r.tool for r in results] == ["search_notes", "get_note", "teleport", "list_categories"]
    assert [r.ok for r in results] == [True, False, False, True]
    assert "Invalid parameters for get_note" in results[1].error
    assert "not available" in results[2].error
    assert results[3].result == {"success": True, "categories": ["streaming", "work"]}


@pytest.mark.anyio
async def test_tool_exception_becomes_error_result(executor, store):
    store.fail_reads = True
    [result] = await executor.execute(
        [ToolCall("get_note", {"note_id": "note_1"})], SessionContext(session_id="s1"),
    )
    assert not result.ok
    assert result.error == "store offline"


@pytest.mark.anyio
async def test_mutation_tool_rejected_for_read_only_context(executor, store):
    call = ToolCall("delete_note", {"note_id": "note_1"})

    [denied] = await executor.execute([call], SessionContext(session_id="s1", read_only=True))
    assert not denied.ok
    assert "note_1" in store.notes

    [allowed] = await executor.execute([call], SessionContext(session_id="s1", read_only=False))
    assert allowed.ok
    assert "note_1" not in store.notes


@pytest.mark.anyio
async def test_cancelled_batch_raises(executor):
    token = CancellationToken()
    token.cancel("user pressed stop")
    ctx = SessionContext(session_id="s1", signal=token)
    with pytest.raises(AgentAbortedError, match="user pressed stop"):
        await executor.execute([ToolCall("list_categories", {})], ctx)


@pytest.mark.anyio
async def test_search_ranks_vector_hits_first(executor):
    [result] = await executor.execute(
        [ToolCall("search_notes", {"query": "netflix password", "limit": 5})],
        SessionContext(session_id="s1"),
    )
    notes = result.result["notes"]
    assert notes[0]["title"] == "Netflix"
    assert notes[0]["similarity"] == 1.0
    assert result.result["message"] == f"Found {len(notes)} relevant note(s)."


@pytest.mark.anyio
async def test_search_min_similarity_drops_weak_hits(embedder, store):
    tool = SearchNotesTool(embedder, store, min_similarity=0.5)
    payload = await tool.execute(SessionContext(session_id="s1"), query="netflix", limit=5)
    assert [n["title"] for n in payload["notes"]] == ["Netflix"]


@pytest.mark.anyio
async def test_search_falls_back_to_keywords_when_embedder_is_down(embedder, store):
    embedder.available = False
    tool = SearchNotesTool(embedder, store)
    payload = await tool.execute(SessionContext(session_id="s1"), query="dev@example.com", limit=5)
    assert [n["title"] for n in payload["notes"]] == ["GitHub"]
    assert payload["notes"][0]["similarity"] == KEYWORD_MATCH


@pytest.mark.anyio
async def test_search_without_hits(embedder, store):
    embedder.available = False
    tool = SearchNotesTool(embedder, store)
    payload = await tool.execute(SessionContext(session_id="s1"), query="spotify", limit=5)
    assert payload == {"success": True, "notes": [], "message": "No notes found."}


@pytest.mark.anyio
async def test_get_note_missing(store):
    payload = await GetNoteTool(store).execute(SessionContext(session_id="s1"), note_id="nope")
    assert payload == {"success": False, "message": 'Note with ID "nope" not found.'}


@pytest.mark.anyio
async def test_create_then_update_reembeds(embedder, store):
    ctx = SessionContext(session_id="s1", read_only=False)
    created = await CreateNoteTool(embedder, store).execute(
        ctx, title="Bank", content="finance login", category="finance",
    )
    note_id = created["noteId"]
    assert store.notes[note_id].embedding is not None

    embedder.calls.clear()
    updated = await UpdateNoteTool(embedder, store).execute(ctx, note_id=note_id, content="new pin 1234")
    assert updated["success"] is True
    assert store.notes[note_id].content_plaintext == "new pin 1234"
    assert store.notes[note_id].content == "new pin 1234"
    assert embedder.calls == ["Bank\nnew pin 1234"]


def test_clean_content():
    assert clean_content("a\\nb\n   \n\n\n\nc  ") == "a\nb\n\nc"
