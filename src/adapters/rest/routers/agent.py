"""Agent endpoints: run, stream, memory, history, usage and session reset."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from adapters.rest.dependencies import get_agent, get_factory, require_session
from adapters.rest.schemas import AgentResponseOut, HistoryOut, RunBody, TurnOut, UsageOut
from agent.executor import AgentExecutor
from factory import ServiceFactory

router = APIRouter(prefix="/agent", tags=["agent"])
logger = logging.getLogger(__name__)


@router.post("/{session_id}/run", response_model=AgentResponseOut)
async def run(body: RunBody, agent: AgentExecutor = Depends(get_agent)):
    """Answer one query within the session. Failures come back as status="error"."""
    logger.info("REST run session=%s | %s", agent.session_id, body.query[:200])
    response = await agent.run(body.query)
    return AgentResponseOut.model_validate(response.to_dict())


@router.post("/{session_id}/stream")
async def stream(body: RunBody, agent: AgentExecutor = Depends(get_agent)):
    """Same pipeline as /run, streamed as plain text."""
    return StreamingResponse(
        agent.run_streaming(body.query),
        media_type="text/plain; charset=utf-8",
    )


@router.delete("/{session_id}/memory")
async def clear_memory(
    session_id: str = Depends(require_session),
    factory: ServiceFactory = Depends(get_factory),
):
    await factory.agent_for(session_id).clear_memory()
    return {"cleared": True}


@router.get("/{session_id}/history", response_model=HistoryOut)
async def history(
    session_id: str = Depends(require_session),
    factory: ServiceFactory = Depends(get_factory),
):
    memory = factory.sessions.get(session_id).memory
    return HistoryOut(
        summary=memory.summary(),
        turns=[TurnOut(role=t.role.value, text=t.text) for t in memory.load()],
    )


@router.get("/{session_id}/usage", response_model=UsageOut)
async def usage(
    session_id: str = Depends(require_session),
    factory: ServiceFactory = Depends(get_factory),
):
    current = factory.sessions.get_usage(session_id)
    return UsageOut(
        usage=current.usage,
        quota=current.quota,
        percentage=current.percentage,
        should_clear=factory.sessions.should_clear(session_id),
    )


@router.delete("/{session_id}")
async def destroy(session_id: str, factory: ServiceFactory = Depends(get_factory)):
    """Destroy the session, its memory and its token budget."""
    if not factory.reset_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}",
        )
    return {"destroyed": True}
