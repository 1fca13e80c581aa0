"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from environment or passed
explicitly. Every field has a default so tests can build Settings directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    return float(value)


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the note agent.

    No module-level globals - construct via from_env() or pass explicitly
    in tests.
    """
    project_root: Path = field(default_factory=Path.cwd)

    # Note store
    db_path: str = "mindkeep.db"

    # ── Centralized LLM Provider ────────────────────────────────
    # One setting controls both selection and extraction calls.
    # Allowed: "ollama" (on-device, default), "openai", "groq"
    llm_provider: str = "ollama"

    # Model names - only the one matching llm_provider is used.
    llm_model_ollama: str = "llama3.2"
    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"

    llm_temperature: float = 0.0
    extraction_temperature: float = 0.2

    # Embeddings (always local HuggingFace - not affected by llm_provider)
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Connection details
    ollama_base_url: str = "http://localhost:11434/"
    groq_api_key: str = ""
    openai_api_key: str = ""

    # Agent
    memory_max_pairs: int = 10
    search_default_limit: int = 5
    # None disables the similarity cut-off
    search_min_similarity: Optional[float] = None
    read_only_tools: bool = True

    # Session budget
    session_token_quota: int = 9216
    session_clear_threshold: float = 80.0
    session_warn_threshold: float = 90.0

    log_level: str = "INFO"

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        return self.llm_model_ollama

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from environment variables (and a .env file if present)."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent

        return cls(
            project_root=root,
            db_path=os.getenv("DB_PATH", "mindkeep.db"),

            llm_provider=os.getenv("LLM_PROVIDER", "ollama"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0")),
            extraction_temperature=float(os.getenv("EXTRACTION_TEMPERATURE", "0.2")),
            embedding_model=os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),

            memory_max_pairs=int(os.getenv("MEMORY_MAX_PAIRS", "10")),
            search_default_limit=int(os.getenv("SEARCH_DEFAULT_LIMIT", "5")),
            search_min_similarity=_optional_float(os.getenv("SEARCH_MIN_SIMILARITY")),
            read_only_tools=_flag(os.getenv("READ_ONLY_TOOLS", "true")),

            session_token_quota=int(os.getenv("SESSION_TOKEN_QUOTA", "9216")),
            session_clear_threshold=float(os.getenv("SESSION_CLEAR_THRESHOLD", "80")),
            session_warn_threshold=float(os.getenv("SESSION_WARN_THRESHOLD", "90")),

            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
