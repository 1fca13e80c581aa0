import asyncio
import logging

import pytest

from agent.executor import CLEARED_MESSAGE, SEARCHING_STATUS
from agent.narration import NOT_FOUND_MESSAGE
from domain.cancellation import CancellationToken
from domain.exceptions import ContextOverflowError, ModelUnavailableError
from domain.models import ActionType, AgentState, DataType
from domain.ports import ModelReply


@pytest.mark.anyio
async def test_netflix_password_is_extracted_but_never_narrated(factory, llm, store):
    llm.queue("search_notes:netflix password", "S3cr3t!")
    agent = factory.create_agent()

    response = await agent.run("what's my netflix password?")

    assert response.status is AgentState.DONE
    assert response.extracted_data == "S3cr3t!"
    assert response.data_type is DataType.PASSWORD
    assert response.confidence == 0.95
    assert response.narrative == "I found your Netflix password."
    assert "S3cr3t!" not in response.narrative
    assert response.reference_note_ids[0] == "note_1"
    assert set(response.reference_note_ids) <= set(store.notes)

    actions = [(a.type, a.label) for a in response.suggested_actions]
    assert (ActionType.COPY, "Copy to clipboard") in actions
    assert (ActionType.FILL, "Fill password") in actions
    assert (ActionType.VIEW_NOTE, "View note 1") in actions


@pytest.mark.anyio
async def test_extraction_call_is_isolated_from_the_session(factory, llm):
    llm.queue("search_notes:netflix password", "S3cr3t!")
    agent = factory.create_agent()
    await agent.run("what's my netflix password?")

    selection, extraction = llm.calls
    assert selection["system"] is not None
    assert extraction["system"] is None
    assert isinstance(extraction["prompt"], str)
    assert "S3cr3t!" in extraction["prompt"]

    session = factory.sessions.get(agent.session_id)
    remembered = " ".join(t.text for t in session.memory.load())
    assert "S3cr3t!" not in remembered


@pytest.mark.anyio
async def test_conversational_question_is_answered_from_memory(factory, llm):
    llm.queue("search_notes:netflix password", "S3cr3t!")
    agent = factory.create_agent()
    await agent.run("what's my netflix password?")
    calls_before = len(llm.calls)

    response = await agent.run("what did I just ask?")

    assert response.ok
    assert response.narrative == "Your last question was: \"what's my netflix password?\""
    assert response.reference_note_ids == ()
    assert len(llm.calls) == calls_before


@pytest.mark.anyio
async def test_question_addressed_to_assistant_recalls_user_turn(factory, llm):
    llm.queue("search_notes:netflix password", "S3cr3t!")
    agent = factory.create_agent()
    await agent.run("what's my netflix password?")

    response = await agent.run("what did I just ask you?")

    assert response.narrative == "Your last question was: \"what's my netflix password?\""


@pytest.mark.anyio
async def test_no_tool_selected_means_not_found(factory, llm):
    llm.queue("none")
    response = await factory.create_agent().run("hello")
    assert response.ok
    assert response.narrative == NOT_FOUND_MESSAGE
    assert response.extracted_data is None
    assert response.confidence == 0.5
    assert len(llm.calls) == 1


@pytest.mark.anyio
async def test_garbled_selection_degrades_to_no_tools(factory, llm):
    llm.queue("Sure! Let me look that up for you.")
    response = await factory.create_agent().run("where's my email")
    assert response.ok
    assert response.narrative == NOT_FOUND_MESSAGE


@pytest.mark.anyio
async def test_near_quota_run_succeeds_with_warning(make_factory, llm, caplog):
    factory = await make_factory(session_token_quota=100)
    llm.queue(ModelReply("search_notes:netflix password", input_tokens=95), "S3cr3t!")
    agent = factory.create_agent()

    response = await agent.run("what's my netflix password?")
    assert response.ok
    assert response.extracted_data == "S3cr3t!"
    assert response.warnings == (
        "Token limit nearly reached: 95/100 tokens (95.0%). Consider clearing the session.",
    )

    llm.queue(ModelReply("search_notes:github email", input_tokens=120), "dev@example.com")
    with caplog.at_level(logging.WARNING):
        second = await agent.run("what's my github email?")
    assert "Token limit nearly reached" in caplog.text
    assert second.ok
    assert second.warnings[0].startswith("Token quota exceeded")

    llm.queue(ModelReply("none", input_tokens=130))
    third = await agent.run("anything else?")
    assert third.status is AgentState.DONE
    assert third.error is None
    assert third.narrative == NOT_FOUND_MESSAGE
    assert third.warnings == (
        "Token quota exceeded: 130/100 tokens (130.0%). Clear the session to reclaim budget.",
    )


@pytest.mark.anyio
async def test_provider_context_rejection_ends_in_quota_error(make_factory, llm):
    factory = await make_factory(session_token_quota=100)
    llm.queue(ContextOverflowError("context_length_exceeded"))
    agent = factory.create_agent()

    response = await agent.run("what's my netflix password?")

    assert response.status is AgentState.ERROR
    assert response.error == "quota_exceeded"
    assert await agent.get_history_summary() == "No conversation history yet."


@pytest.mark.anyio
async def test_model_unavailable_ends_in_error_without_memory(factory, llm):
    llm.queue(ModelUnavailableError("ollama is not running"))
    agent = factory.create_agent()

    response = await agent.run("what's my netflix password?")

    assert response.status is AgentState.ERROR
    assert response.error == "model_unavailable"
    assert response.confidence == 0.0
    assert agent.state is AgentState.ERROR
    assert await agent.get_history_summary() == "No conversation history yet."


@pytest.mark.anyio
async def test_cancelled_run_is_aborted(factory, llm):
    token = CancellationToken()
    token.cancel()
    agent = factory.create_agent()

    response = await agent.run("what's my netflix password?", signal=token)

    assert response.error == "aborted"
    assert llm.calls == []
    assert await agent.get_history_summary() == "No conversation history yet."


@pytest.mark.anyio
async def test_history_and_clear_commands(factory, llm):
    agent = factory.create_agent()
    await agent.run("hello")

    history = await agent.run("/history")
    assert history.narrative.startswith("1. User: hello")

    cleared = await agent.run("/clear")
    assert cleared.narrative == CLEARED_MESSAGE
    assert await agent.get_history_summary() == "No conversation history yet."


@pytest.mark.anyio
async def test_clear_command_resets_context_and_usage(make_factory, llm):
    factory = await make_factory(session_token_quota=100)
    llm.queue(ModelReply("none", input_tokens=95))
    agent = factory.create_agent()
    await agent.run("hello")
    assert factory.sessions.get_usage(agent.session_id).usage == 95

    await agent.run("/clear")

    assert factory.sessions.get_usage(agent.session_id).usage == 0
    assert factory.sessions.get(agent.session_id).context == []
    llm.queue(ModelReply("none", input_tokens=10))
    follow_up = await agent.run("hello again")
    assert follow_up.warnings == ()


@pytest.mark.anyio
async def test_clear_memory_resets_context_and_usage(make_factory, llm):
    factory = await make_factory(session_token_quota=100)
    llm.queue(ModelReply("none", input_tokens=120))
    agent = factory.create_agent()
    await agent.run("hello")

    await agent.clear_memory()

    assert await agent.get_history_summary() == "No conversation history yet."
    assert factory.sessions.get_usage(agent.session_id).usage == 0
    assert factory.sessions.get(agent.session_id).context == []


@pytest.mark.anyio
async def test_streaming_yields_status_then_narrative(factory, llm):
    llm.queue("search_notes:netflix password", "S3cr3t!")
    agent = factory.create_agent()

    chunks = [chunk async for chunk in agent.run_streaming("what's my netflix password?")]

    assert chunks == [SEARCHING_STATUS, "I found your Netflix password."]
    assert "1. User: what's my netflix password?" in await agent.get_history_summary()


@pytest.mark.anyio
async def test_streaming_error_ends_with_message(factory, llm):
    llm.queue(ModelUnavailableError("down"))
    agent = factory.create_agent()
    chunks = [chunk async for chunk in agent.run_streaming("my email")]
    assert chunks[-1].startswith("\n\nI encountered an error")
    assert await agent.get_history_summary() == "No conversation history yet."


@pytest.mark.anyio
async def test_sessions_are_isolated(factory):
    first = factory.agent_for("a")
    second = factory.agent_for("b")
    await asyncio.gather(first.run("hello from a"), second.run("hello from b"))

    assert "hello from a" in await first.get_history_summary()
    assert "hello from b" not in await first.get_history_summary()
    assert factory.agent_for("a") is first


@pytest.mark.anyio
async def test_runs_on_one_session_are_serialized(factory):
    agent = factory.agent_for("shared")
    await asyncio.gather(*(agent.run(f"question {i}") for i in range(3)))

    turns = factory.sessions.get("shared").memory.load()
    assert len(turns) == 6
    assert [t.role.value for t in turns] == ["user", "assistant"] * 3


@pytest.mark.anyio
async def test_reset_session(factory):
    await factory.agent_for("gone").run("hello")
    assert factory.reset_session("gone") is True
    assert "gone" not in factory.sessions
    assert factory.reset_session("gone") is False


@pytest.mark.anyio
async def test_response_dict_uses_wire_names(factory, llm):
    llm.queue("search_notes:netflix password", "S3cr3t!")
    payload = (await factory.create_agent().run("netflix password")).to_dict()
    assert set(payload) == {
        "extractedData", "referenceNoteIds", "narrative", "dataType", "confidence",
        "suggestedActions", "status", "warnings", "error",
    }
    assert payload["status"] == "done"
