"""
FastAPI application - REST adapter for the MindKeep note agent.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 127.0.0.1 --port 8000 --reload

The agent itself never raises for model or quota failures; those come back
as an AgentResponse with status "error". Only lookups of unknown sessions
turn into HTTP errors.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from adapters.rest.dependencies import set_factory
from adapters.rest.routers import agent as agent_routes
from domain.exceptions import SessionNotFoundError
from factory import ServiceFactory
from infrastructure.config import Settings

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the factory on startup; destroy every session on shutdown."""
    config = Settings.from_env(project_root=_src_dir.parent)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    factory = ServiceFactory(config)
    await factory.initialize()
    set_factory(factory)
    try:
        yield
    finally:
        await factory.shutdown()
        set_factory(None)


async def _session_not_found(request: Request, exc: SessionNotFoundError) -> JSONResponse:
    logger.info("Session lookup failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title="MindKeep Note Agent",
        version=__version__,
        description="Retrieval-augmented assistant over your private notes.",
        lifespan=lifespan,
    )

    # Local-first service; only the desktop/web UI on localhost calls it
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SessionNotFoundError, _session_not_found)
    app.include_router(agent_routes.router)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
