"""
application.services.session_budget - Per-session input-token budget.

The model reports the cumulative size of a session's context after every
call, so record_usage() overwrites the stored value instead of adding to
it. Near-limit and over-limit conditions are surfaced as warnings; only
the session registry turns an already-exceeded session into an error.
"""

from __future__ import annotations

import logging
from typing import Optional

from domain.exceptions import SessionNotFoundError
from domain.models import TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_QUOTA = 9216


class SessionBudgetTracker:
    """Tracks input-token usage against quota, keyed by session id."""

    def __init__(
        self,
        default_quota: int = DEFAULT_QUOTA,
        clear_threshold: float = 80.0,
        warn_threshold: float = 90.0,
    ):
        self._default_quota = default_quota
        self._clear_threshold = clear_threshold
        self._warn_threshold = warn_threshold
        self._usage: dict[str, int] = {}
        self._quota: dict[str, int] = {}

    @property
    def warn_threshold(self) -> float:
        return self._warn_threshold

    def register(self, session_id: str, quota: Optional[int] = None) -> None:
        self._usage[session_id] = 0
        self._quota[session_id] = quota or self._default_quota

    def forget(self, session_id: str) -> None:
        self._usage.pop(session_id, None)
        self._quota.pop(session_id, None)

    def record_usage(self, session_id: str, used_tokens: int) -> TokenUsage:
        """Store the model-reported cumulative usage for a session."""
        if session_id not in self._quota:
            self.register(session_id)
        self._usage[session_id] = max(0, int(used_tokens))
        usage = self.get_usage(session_id)
        logger.debug(
            "Session %s usage %d/%d tokens (%.1f%%)",
            session_id, usage.usage, usage.quota, usage.percentage,
        )
        return usage

    def get_usage(self, session_id: str) -> TokenUsage:
        if session_id not in self._quota:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        usage = self._usage[session_id]
        quota = self._quota[session_id]
        percentage = (usage / quota) * 100 if quota else 0.0
        return TokenUsage(usage=usage, quota=quota, percentage=percentage)

    def should_clear(self, session_id: str, threshold_percent: Optional[float] = None) -> bool:
        """True once usage reaches the threshold (80% unless given)."""
        threshold = self._clear_threshold if threshold_percent is None else threshold_percent
        try:
            return self.get_usage(session_id).percentage >= threshold
        except SessionNotFoundError:
            return False

    def is_near_limit(self, session_id: str) -> bool:
        return self.get_usage(session_id).percentage >= self._warn_threshold

    def is_exceeded(self, session_id: str) -> bool:
        return self.get_usage(session_id).percentage > 100.0

    def warnings(self, session_id: str) -> list[str]:
        """Human-readable budget warnings to attach to a response."""
        try:
            usage = self.get_usage(session_id)
        except SessionNotFoundError:
            return []

        if usage.percentage > 100.0:
            return [
                f"Token quota exceeded: {usage.usage}/{usage.quota} tokens "
                f"({usage.percentage:.1f}%). Clear the session to reclaim budget."
            ]
        if usage.percentage >= self._warn_threshold:
            return [
                f"Token limit nearly reached: {usage.usage}/{usage.quota} tokens "
                f"({usage.percentage:.1f}%). Consider clearing the session."
            ]
        return []
