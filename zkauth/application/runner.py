"""
Application layer: background task that refreshes state on a fixed interval.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable


class PeriodicTask:
    """Runs an async action every ``interval`` seconds until stopped.

    A failing action is logged and reported to ``on_error``; the loop keeps
    going. Stopping cancels the pending sleep or the running action.
    """

    def __init__(
        self,
        action: Callable[[], Awaitable[object]],
        interval: float,
        name: str = "refresh",
        on_error: Callable[[Exception], None] | None = None,
    ):
        self.action = action
        self.interval = interval
        self.name = name
        self.on_error = on_error
        self.runs = 0
        self.logger = logging.getLogger(__name__)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        """Run the loop in the current task."""
        while True:
            try:
                await self.action()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.exception("Periodic task %s failed", self.name)
                if self.on_error:
                    self.on_error(e)
            self.runs += 1
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            self.logger.warning("Periodic task %s is already running", self.name)
            return
        self._task = asyncio.get_running_loop().create_task(self.run(), name=self.name)
        self.logger.info("Periodic task %s started", self.name)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.info("Periodic task %s stopped", self.name)
