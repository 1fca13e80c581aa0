"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- get_agent():   the AgentExecutor bound to the path's session id.
- require_session(): 404 unless the path's session id is live.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Path, status

from agent.executor import AgentExecutor
from factory import ServiceFactory

# Module-level reference set by app lifespan
_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def get_agent(
    session_id: str = Path(..., min_length=1, max_length=128),
    factory: ServiceFactory = Depends(get_factory),
) -> AgentExecutor:
    return factory.agent_for(session_id)


def require_session(
    session_id: str = Path(..., min_length=1, max_length=128),
    factory: ServiceFactory = Depends(get_factory),
) -> str:
    if session_id not in factory.sessions:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}",
        )
    return session_id
