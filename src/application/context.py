"""
application.context - Request-scoped session context.

Every tool and model call receives its context explicitly. Two concurrent
sessions get two different SessionContext instances, and each request gets
its own cancellation token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

from domain.cancellation import CancellationToken


@dataclass
class SessionContext:
    """Per-request/session context passed through all layers.

    Attributes:
        session_id:  Model session this request runs in.
        read_only:   When True, mutation tools are not part of the active tool set.
        request_id:  Unique per request, for tracing/logging.
        signal:      Cancellation token for the request in flight.
    """
    session_id: str
    read_only: bool = True
    request_id: str = field(default_factory=lambda: uuid4().hex)
    signal: CancellationToken = field(default_factory=CancellationToken)

    def new_request(self, signal: CancellationToken | None = None) -> None:
        """Reset per-request state for a new request within the same session."""
        self.request_id = uuid4().hex
        self.signal = signal or CancellationToken()
