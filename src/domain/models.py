"""
domain.models - Value objects for the agent pipeline.

These are immutable data containers with no business logic and no
dependencies on infrastructure (no LangChain, no Ollama, no SQLite).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from domain.entities import Note


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AgentState(str, Enum):
    """States of one agent run."""
    IDLE = "idle"
    SELECTING_TOOLS = "selecting_tools"
    EXECUTING_TOOLS = "executing_tools"
    EXTRACTING = "extracting"
    NARRATING = "narrating"
    DONE = "done"
    ERROR = "error"


class DataType(str, Enum):
    """Kind of fact the user asked for, classified from the query text."""
    EMAIL = "email"
    PASSWORD = "password"
    URL = "url"
    TEXT = "text"
    CODE = "code"
    DATE = "date"
    OTHER = "other"


class ActionType(str, Enum):
    COPY = "copy"
    FILL = "fill"
    VIEW_NOTE = "view_note"
    OPEN_LINK = "open_link"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ToolKind(str, Enum):
    """Closed set of tools the agent knows how to dispatch."""
    SEARCH_NOTES = "search_notes"
    GET_NOTE = "get_note"
    LIST_CATEGORIES = "list_categories"
    CREATE_NOTE = "create_note"
    UPDATE_NOTE = "update_note"
    DELETE_NOTE = "delete_note"

    @classmethod
    def parse(cls, name: str) -> Optional[ToolKind]:
        """Map a tool name to its kind, or None for names outside the set."""
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def is_mutation(self) -> bool:
        return self in _MUTATION_KINDS


_MUTATION_KINDS = frozenset({
    ToolKind.CREATE_NOTE,
    ToolKind.UPDATE_NOTE,
    ToolKind.DELETE_NOTE,
})


# ---------------------------------------------------------------------------
# Ranking / memory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoredNote:
    """A note paired with its cosine similarity to one query. Never persisted."""
    note: Note
    score: float


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the orchestrator, validated before execution."""
    name: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> Optional[ToolKind]:
        return ToolKind.parse(self.name)


# ---------------------------------------------------------------------------
# Extraction / response
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractedFact:
    """Output of the extraction stage.

    confidence is a coarse two-level value: 0.95 when data was extracted,
    0.5 otherwise.
    """
    data: Optional[str]
    data_type: DataType
    confidence: float


@dataclass(frozen=True)
class SuggestedAction:
    type: ActionType
    label: str
    data: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "label": self.label, "data": self.data}


@dataclass(frozen=True)
class TokenUsage:
    """Snapshot of a session's input-token budget."""
    usage: int
    quota: int
    percentage: float


@dataclass(frozen=True)
class AgentResponse:
    """Structured result of one agent run. Immutable once built."""
    extracted_data: Optional[str]
    reference_note_ids: tuple[str, ...]
    narrative: str
    data_type: DataType
    confidence: float
    suggested_actions: tuple[SuggestedAction, ...] = ()
    status: AgentState = AgentState.DONE
    warnings: tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is AgentState.DONE

    @classmethod
    def failure(cls, narrative: str, error: str) -> AgentResponse:
        """Build the response returned when a run ends in the Error state."""
        return cls(
            extracted_data=None,
            reference_note_ids=(),
            narrative=narrative,
            data_type=DataType.OTHER,
            confidence=0.0,
            suggested_actions=(),
            status=AgentState.ERROR,
            error=error,
        )

    @classmethod
    def message(cls, narrative: str) -> AgentResponse:
        """A completed response carrying only text (debug commands, memory answers)."""
        return cls(
            extracted_data=None,
            reference_note_ids=(),
            narrative=narrative,
            data_type=DataType.OTHER,
            confidence=0.5,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "extractedData": self.extracted_data,
            "referenceNoteIds": list(self.reference_note_ids),
            "narrative": self.narrative,
            "dataType": self.data_type.value,
            "confidence": self.confidence,
            "suggestedActions": [a.to_dict() for a in self.suggested_actions],
            "status": self.status.value,
            "warnings": list(self.warnings),
            "error": self.error,
        }
