"""Periodic task scheduling for the drivebase update loops.

Each periodic activity (odometry, vision) runs as its own asyncio task on a
fixed schedule, independent of the drive command path.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union


class PeriodicTask:
    """Runs a callback every ``period`` seconds until stopped.

    The callback may be a plain function or a coroutine function. An exception
    raised by a tick is logged and the schedule continues. A tick that
    overruns skips the missed slots instead of firing them back to back.

    Attributes:
        name: Task name used in log messages.
        period: Time between ticks (seconds).
        ticks: Number of completed ticks.
        errors: Number of ticks that raised.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], Union[Any, Awaitable[Any]]],
        period: float,
    ) -> None:
        """Initialize the task.

        Args:
            name: Task name used in log messages.
            callback: Function called once per tick.
            period: Time between ticks (seconds).

        Raises:
            ValueError: If period is not positive.
        """
        if period <= 0:
            raise ValueError(f"Period of task '{name}' must be positive, got {period}")

        self.name = name
        self.callback = callback
        self.period = period
        self.ticks: int = 0
        self.errors: int = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the task on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        """Stop scheduling further ticks."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_time = loop.time()

        while True:
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.errors += 1
                logging.error(f"Periodic task '{self.name}' tick failed: {e}", exc_info=True)
            self.ticks += 1

            next_time += self.period
            now = loop.time()
            if next_time < now:
                missed = int((now - next_time) / self.period) + 1
                next_time += missed * self.period
            await asyncio.sleep(next_time - now)
