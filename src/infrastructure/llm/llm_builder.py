"""
infrastructure.llm.llm_builder - Chat-model construction per provider.

The same chat model serves tool selection and extraction. "ollama" is the
default and keeps every prompt on the user's machine; the hosted providers
need their optional extras installed (pip install mindkeep[openai] / [groq]).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)

GROQ_DEFAULT_MAX_TOKENS = 512


def _require(key: str, env_name: str, provider: str) -> str:
    if not key:
        raise ValueError(f"{env_name} is required when LLM_PROVIDER='{provider}'")
    return key


def _ollama(model: str, temperature: float, max_tokens: Optional[int], **options: Any) -> BaseChatModel:
    from langchain_ollama import ChatOllama

    params: Dict[str, Any] = {"base_url": options["ollama_base_url"]}
    if max_tokens is not None:
        params["num_predict"] = max_tokens
    return ChatOllama(model=model, temperature=temperature, **params)


def _openai(model: str, temperature: float, max_tokens: Optional[int], **options: Any) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    params: Dict[str, Any] = {
        "openai_api_key": _require(options["openai_api_key"], "OPENAI_API_KEY", "openai"),
    }
    if max_tokens is not None:
        params["max_tokens"] = max_tokens
    return ChatOpenAI(model=model, temperature=temperature, **params)


def _groq(model: str, temperature: float, max_tokens: Optional[int], **options: Any) -> BaseChatModel:
    from langchain_groq import ChatGroq

    return ChatGroq(
        model=model,
        temperature=temperature,
        groq_api_key=_require(options["groq_api_key"], "GROQ_API_KEY", "groq"),
        max_tokens=max_tokens if max_tokens is not None else GROQ_DEFAULT_MAX_TOKENS,
    )


_BUILDERS: Dict[str, Callable[..., BaseChatModel]] = {
    "ollama": _ollama,
    "openai": _openai,
    "groq": _groq,
}


def build_llm(
    *,
    provider: str,
    model: str,
    temperature: float = 0,
    ollama_base_url: str = "http://localhost:11434/",
    openai_api_key: str = "",
    groq_api_key: str = "",
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Build the chat model for `provider`.

    Raises:
        ValueError: unknown provider, or a hosted provider without its API key.
    """
    name = provider.lower().strip()
    builder = _BUILDERS.get(name)
    if builder is None:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            f"Must be one of: {', '.join(_BUILDERS)}."
        )

    logger.info("Building %s chat model (model=%s)", name, model)
    return builder(
        model,
        temperature,
        max_tokens,
        ollama_base_url=ollama_base_url,
        openai_api_key=openai_api_key,
        groq_api_key=groq_api_key,
    )
