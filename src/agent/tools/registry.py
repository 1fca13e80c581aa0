"""
agent.tools.registry - Tool registration and discovery.

Tools are keyed by their ToolKind. Mutation tools can be registered, but
they only become part of the active tool set for writable contexts.
"""

from __future__ import annotations

import logging

from agent.tools.base import BaseTool
from domain.exceptions import UnknownToolError
from domain.models import ToolKind

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Manages tool registration and lookup."""

    def __init__(self):
        self._tools: dict[ToolKind, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """Register a tool by its kind."""
        self._tools[tool.kind] = tool
        logger.debug("Registered tool: %s", tool.name)

    def get(self, kind: ToolKind, read_only: bool = False) -> BaseTool:
        """Get a tool by kind.

        Raises UnknownToolError when the tool is not registered, or when it
        mutates notes and the caller is read-only.
        """
        tool = self._tools.get(kind)
        if tool is None or (read_only and tool.is_mutation):
            raise UnknownToolError(f"Tool '{kind.value}' is not available")
        return tool

    def all(self) -> list[BaseTool]:
        """Return all registered tools."""
        return list(self._tools.values())

    def active(self, read_only: bool) -> list[BaseTool]:
        """Tools a context may call; read-only contexts never see mutation tools."""
        return [t for t in self._tools.values() if not (read_only and t.is_mutation)]

    def names(self, read_only: bool = False) -> list[str]:
        """Return the names of the active tools."""
        return [t.name for t in self.active(read_only)]

    def __contains__(self, kind: ToolKind) -> bool:
        return kind in self._tools
