"""
agent.tools.base - Base tool interface and result container.

All agent tools inherit from BaseTool. A tool returns a JSON-serialisable
dict; the executor wraps it (or the error it raised) in a ToolResult.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from application.context import SessionContext
from domain.models import ToolKind


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call. Exactly one of result/error is set.

    tool:    Name of the tool that was called.
    result:  JSON-shaped payload on success.
    error:   Error message on failure.
    """
    tool: str
    result: Any = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("ToolResult needs exactly one of result or error")

    @classmethod
    def success(cls, tool: str, result: Any) -> ToolResult:
        return cls(tool=tool, result=result)

    @classmethod
    def failure(cls, tool: str, error: str) -> ToolResult:
        return cls(tool=tool, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"tool": self.tool, "result": self.result}
        return {"tool": self.tool, "error": self.error}


class BaseTool(ABC):
    """Abstract base for all agent tools."""

    kind: ToolKind
    description: str

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def is_mutation(self) -> bool:
        return self.kind.is_mutation

    @abstractmethod
    async def execute(self, ctx: SessionContext, **kwargs) -> dict[str, Any]:
        """Execute the tool with the given session context and validated arguments."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...

    def params_schema(self) -> dict[str, dict[str, Any]]:
        """Field name -> {type, required, description}, for prompts and docs."""
        fields = {}
        for field_name, info in self.get_schema().model_fields.items():
            annotation = info.annotation
            fields[field_name] = {
                "type": getattr(annotation, "__name__", str(annotation)),
                "required": info.is_required(),
                "description": info.description or "",
            }
        return fields
