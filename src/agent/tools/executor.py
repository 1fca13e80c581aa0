"""
agent.tools.executor - Sequential, partial-failure tolerant tool execution.

Calls run one after another in the order given. A failing call becomes a
ToolResult with .error set and the batch carries on. Only cancellation
stops the batch.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import ValidationError

from agent.tools.base import BaseTool, ToolResult
from agent.tools.registry import ToolRegistry
from application.context import SessionContext
from domain.exceptions import AgentAbortedError, ToolValidationError, UnknownToolError
from domain.models import ToolCall

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Runs ToolCalls against a ToolRegistry."""

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def execute(
        self, calls: Sequence[ToolCall], ctx: SessionContext,
    ) -> list[ToolResult]:
        results: list[ToolResult] = []
        for call in calls:
            ctx.signal.raise_if_cancelled()
            logger.info("[%s] Executing tool %s %s", ctx.request_id[:8], call.name, call.params)
            try:
                payload = await self._dispatch(call, ctx)
            except AgentAbortedError:
                raise
            except Exception as e:
                logger.warning("Tool %s failed: %s", call.name, e, exc_info=True)
                results.append(ToolResult.failure(call.name, str(e) or type(e).__name__))
            else:
                results.append(ToolResult.success(call.name, payload))
        return results

    async def _dispatch(self, call: ToolCall, ctx: SessionContext) -> dict[str, Any]:
        kind = call.kind
        if kind is None:
            raise UnknownToolError(f"Tool '{call.name}' is not available")

        tool = self._registry.get(kind, read_only=ctx.read_only)
        params = self._validate(tool, call.params)
        return await ctx.signal.run(tool.execute(ctx, **params))

    @staticmethod
    def _validate(tool: BaseTool, params: dict[str, Any]) -> dict[str, Any]:
        try:
            return tool.get_schema().model_validate(params).model_dump()
        except ValidationError as e:
            raise ToolValidationError(
                f"Invalid parameters for {tool.name}: {e.errors()[0]['msg']}"
            ) from e
