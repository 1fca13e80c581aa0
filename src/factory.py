"""
factory - Composition root for the note agent.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services and agents.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    agent = factory.agent_for(session_id)
    response = await agent.run("what's my netflix password?")

Collaborators (language model, embedder, note store) can be passed in
explicitly; tests use that to run the whole pipeline against stubs.
"""

from __future__ import annotations

import logging
from typing import Optional

from agent.executor import AgentExecutor
from agent.extraction import Extractor
from agent.memory import ConversationMemory
from agent.prompt import AGENT_SYSTEM_PROMPT
from agent.tools.create_note import CreateNoteTool
from agent.tools.delete_note import DeleteNoteTool
from agent.tools.executor import ToolExecutor
from agent.tools.get_note import GetNoteTool
from agent.tools.list_categories import ListCategoriesTool
from agent.tools.registry import ToolRegistry
from agent.tools.search_notes import SearchNotesTool
from agent.tools.update_note import UpdateNoteTool
from application.services.category_suggester import CategorySuggester
from application.services.session_budget import SessionBudgetTracker
from application.services.session_registry import SessionRegistry
from domain.ports import EmbedderPort, LanguageModelPort, NoteStorePort
from infrastructure.config import Settings
from infrastructure.embeddings.huggingface_embedder import HuggingFaceEmbedder
from infrastructure.llm.language_model import LangChainLanguageModel
from infrastructure.llm.llm_builder import build_llm
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.note_repo import SQLiteNoteRepository

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root - wires all dependencies together.

    Call initialize() once at startup, then create agents as needed.
    """

    def __init__(
        self,
        config: Settings,
        llm: Optional[LanguageModelPort] = None,
        embedder: Optional[EmbedderPort] = None,
        note_store: Optional[NoteStorePort] = None,
    ):
        self._config = config
        self._connection = AsyncSQLiteConnection(config.db_path)

        self._llm = llm
        self._embedder = embedder
        self._note_store = note_store

        self._budget = SessionBudgetTracker(
            default_quota=config.session_token_quota,
            clear_threshold=config.session_clear_threshold,
            warn_threshold=config.session_warn_threshold,
        )
        self._sessions: Optional[SessionRegistry] = None
        self._registry: Optional[ToolRegistry] = None
        self._agents: dict[str, AgentExecutor] = {}
        self._initialized = False

    @property
    def config(self) -> Settings:
        return self._config

    async def initialize(self) -> None:
        """One-time startup: run migrations, build the model collaborators.

        Must be called before creating services or agents.
        """
        logger.info("Initializing ServiceFactory...")

        if self._note_store is None:
            await run_migrations(self._connection)
            self._note_store = SQLiteNoteRepository(self._connection)
            logger.info("Note store ready (%s)", self._config.db_path)

        if self._llm is None:
            self._llm = LangChainLanguageModel(build_llm(
                provider=self._config.llm_provider,
                model=self._config.active_llm_model,
                temperature=self._config.llm_temperature,
                ollama_base_url=self._config.ollama_base_url,
                openai_api_key=self._config.openai_api_key,
                groq_api_key=self._config.groq_api_key,
            ))

        if self._embedder is None:
            # Loaded lazily on first embed call.
            self._embedder = HuggingFaceEmbedder(self._config.embedding_model)

        self._sessions = SessionRegistry(
            llm=self._llm,
            budget=self._budget,
            memory_factory=lambda: ConversationMemory(max_pairs=self._config.memory_max_pairs),
            default_system_prompt=AGENT_SYSTEM_PROMPT,
        )
        self._registry = self._build_registry()

        self._initialized = True
        logger.info(
            "ServiceFactory ready (provider=%s, model=%s)",
            self._config.llm_provider, self._config.active_llm_model,
        )

    async def shutdown(self) -> None:
        """Explicit teardown: destroy every live session."""
        if self._sessions is not None:
            self._sessions.destroy_all_sessions()
        self._agents.clear()

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> SessionRegistry:
        self._ensure_initialized()
        return self._sessions

    @property
    def note_store(self) -> NoteStorePort:
        self._ensure_initialized()
        return self._note_store

    def create_tool_executor(self) -> ToolExecutor:
        self._ensure_initialized()
        return ToolExecutor(self._registry)

    def create_category_suggester(self) -> CategorySuggester:
        self._ensure_initialized()
        return CategorySuggester(self._embedder)

    # ------------------------------------------------------------------
    # Agent creation
    # ------------------------------------------------------------------

    def create_agent(
        self, session_id: Optional[str] = None, read_only: Optional[bool] = None,
    ) -> AgentExecutor:
        """Create a fully configured AgentExecutor bound to one session.

        The session is created lazily on the agent's first call.
        """
        self._ensure_initialized()
        return AgentExecutor(
            session_id=session_id,
            sessions=self._sessions,
            tools=self.create_tool_executor(),
            extractor=Extractor(self._llm, temperature=self._config.extraction_temperature),
            read_only=self._config.read_only_tools if read_only is None else read_only,
            search_limit=self._config.search_default_limit,
        )

    def agent_for(self, session_id: str) -> AgentExecutor:
        """Return the agent bound to `session_id`, creating it on first use."""
        agent = self._agents.get(session_id)
        if agent is None:
            agent = self.create_agent(session_id)
            self._agents[session_id] = agent
        return agent

    def reset_session(self, session_id: str) -> bool:
        """Destroy a session together with its memory and cached agent."""
        self._agents.pop(session_id, None)
        return self.sessions.destroy_session(session_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_registry(self) -> ToolRegistry:
        registry = ToolRegistry()
        registry.register(SearchNotesTool(
            self._embedder,
            self._note_store,
            min_similarity=self._config.search_min_similarity,
        ))
        registry.register(GetNoteTool(self._note_store))
        registry.register(ListCategoriesTool(self._note_store))
        # Mutation tools; filtered out for read-only contexts.
        registry.register(CreateNoteTool(self._embedder, self._note_store))
        registry.register(UpdateNoteTool(self._embedder, self._note_store))
        registry.register(DeleteNoteTool(self._note_store))
        return registry

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )
