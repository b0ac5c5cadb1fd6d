"""Delay re-querying while the user is still typing."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 0.35


class Debouncer:
    """Holds at most one pending action.

    ``schedule`` replaces a pending action that has not fired yet. An action
    that already fired runs to completion; it is not cancelled by a later
    ``schedule``. Must be used from within a running event loop.
    """

    def __init__(self, delay: float = DEFAULT_DELAY_SECONDS):
        self.delay = delay
        self._task: Optional[asyncio.Task] = None
        self._fired = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done() and not self._fired

    def schedule(self, action: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        if self.pending:
            logger.debug("[Debouncer] Replacing pending action")
            self._task.cancel()
        self._fired = False
        self._task = asyncio.get_running_loop().create_task(self._run(action))
        return self._task

    async def _run(self, action: Callable[[], Awaitable[Any]]) -> Any:
        await asyncio.sleep(self.delay)
        self._fired = True
        return await action()

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def wait(self) -> Any:
        """Wait for the latest scheduled action; None if it was cancelled."""
        task = self._task
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise
