"""
infrastructure.llm.language_model - LanguageModelPort over a LangChain chat model.

Implements:
    - complete() -> ModelReply, with provider-reported input tokens when available
    - stream()   -> async iterator of text chunks
    - count_tokens() -> rough estimate used when a provider reports no usage

A prompt the provider rejects as too large is re-raised as
ContextOverflowError, any other provider failure as ModelUnavailableError.
A fired cancellation token abandons the call with AgentAbortedError.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from domain.cancellation import CancellationToken
from domain.exceptions import AgentAbortedError, ContextOverflowError, ModelUnavailableError
from domain.models import Role
from domain.ports import ModelReply, Prompt

logger = logging.getLogger(__name__)

_CHARS_PER_TOKEN = 4

# Provider error fragments that mean the prompt no longer fits the context window
_OVERFLOW_MARKERS = (
    "context_length_exceeded",
    "context length",
    "context window",
    "maximum context",
    "too many tokens",
    "prompt is too long",
)


def to_messages(prompt: Prompt, system: Optional[str] = None) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    if system:
        messages.append(SystemMessage(content=system))
    if isinstance(prompt, str):
        messages.append(HumanMessage(content=prompt))
        return messages
    for turn in prompt:
        if turn.role is Role.USER:
            messages.append(HumanMessage(content=turn.text))
        else:
            messages.append(AIMessage(content=turn.text))
    return messages


def is_context_overflow(error: BaseException) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _OVERFLOW_MARKERS)


def message_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict):
            parts.append(str(part.get("text", "")))
    return "".join(parts)


class LangChainLanguageModel:
    """Adapts a BaseChatModel (ChatOllama, ChatOpenAI, ChatGroq) to LanguageModelPort."""

    def __init__(self, llm: BaseChatModel):
        self._llm = llm
        self._variants: dict[float, BaseChatModel] = {}

    def _with_temperature(self, temperature: Optional[float]) -> BaseChatModel:
        if temperature is None or not hasattr(self._llm, "temperature"):
            return self._llm
        if temperature not in self._variants:
            self._variants[temperature] = self._llm.model_copy(update={"temperature": temperature})
        return self._variants[temperature]

    async def complete(
        self,
        prompt: Prompt,
        *,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        signal: Optional[CancellationToken] = None,
    ) -> ModelReply:
        llm = self._with_temperature(temperature)
        messages = to_messages(prompt, system)

        try:
            if signal is not None:
                response = await signal.run(llm.ainvoke(messages))
            else:
                response = await llm.ainvoke(messages)
        except AgentAbortedError:
            raise
        except Exception as e:
            if is_context_overflow(e):
                raise ContextOverflowError(f"Prompt exceeds the model context: {e}") from e
            raise ModelUnavailableError(f"Language model call failed: {e}") from e

        usage = getattr(response, "usage_metadata", None) or {}
        input_tokens = usage.get("input_tokens")
        text = message_text(response.content)
        logger.debug("Model replied with %d chars (input_tokens=%s)", len(text), input_tokens)
        return ModelReply(text=text, input_tokens=input_tokens)

    async def stream(
        self,
        prompt: Prompt,
        *,
        system: Optional[str] = None,
        signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[str]:
        messages = to_messages(prompt, system)
        try:
            async for chunk in self._llm.astream(messages):
                if signal is not None:
                    signal.raise_if_cancelled()
                text = message_text(chunk.content)
                if text:
                    yield text
        except AgentAbortedError:
            raise
        except Exception as e:
            if is_context_overflow(e):
                raise ContextOverflowError(f"Prompt exceeds the model context: {e}") from e
            raise ModelUnavailableError(f"Language model stream failed: {e}") from e

    def count_tokens(self, text: str) -> int:
        """Approximate token count (about four characters per token)."""
        return max(1, len(text) // _CHARS_PER_TOKEN) if text else 0
