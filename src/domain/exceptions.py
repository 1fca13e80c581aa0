"""
domain.exceptions - Custom exception hierarchy for the note agent.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed. Only ModelUnavailableError and
AgentAbortedError abort an agent run; everything else is degraded locally
by the stage that owns it.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class ModelUnavailableError(DomainError):
    """Raised when the language model provider is not ready or refuses the call."""


class EmbeddingUnavailableError(ModelUnavailableError):
    """Raised when the embedding provider cannot produce a vector."""


class ToolExecutionError(DomainError):
    """Raised when a single tool invocation fails."""


class ToolValidationError(ToolExecutionError):
    """Raised when tool parameters do not match the tool's declared schema."""


class UnknownToolError(ToolExecutionError):
    """Raised when a tool name is not registered in the active tool set."""


class ExtractionParseError(DomainError):
    """Raised when the extraction stage returns text that cannot be used."""


class SelectionParseError(DomainError):
    """Raised when the tool-selection reply does not match the reply grammar."""


class ContextOverflowError(DomainError):
    """Raised by a model adapter when the provider rejects a prompt as too large."""


class QuotaExceededError(DomainError):
    """Raised when the provider refuses a session prompt because its context is full.

    Crossing the quota on its own is never an error; it only produces warnings.
    """

    def __init__(self, session_id: str, usage: int, quota: int) -> None:
        self.session_id = session_id
        self.usage = usage
        self.quota = quota
        super().__init__(
            f"Session {session_id} used {usage} of {quota} input tokens"
        )


class SessionNotFoundError(DomainError):
    """Raised when a session id is not known to the registry."""


class NoteNotFoundError(DomainError):
    """Raised when a note id does not exist in the store."""


class RepositoryError(DomainError):
    """Raised when a database operation fails."""


class AgentAbortedError(DomainError):
    """Raised when a run is cancelled through its cancellation token."""
