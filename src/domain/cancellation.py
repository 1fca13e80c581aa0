"""
domain.cancellation - Cooperative cancellation token for agent runs.

A token is handed to every model call and tool execution of one run. When
cancel() is called the stage in flight is abandoned and AgentAbortedError is
raised at the next await boundary.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, TypeVar

from domain.exceptions import AgentAbortedError

T = TypeVar("T")


class CancellationToken:
    """Signal shared between a caller and the pipeline it started."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = "Request aborted"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AgentAbortedError(self.reason)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first.

        Raises AgentAbortedError when cancelled before or while waiting. The
        abandoned task is cancelled and awaited so nothing leaks.
        """
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise AgentAbortedError(self.reason)
