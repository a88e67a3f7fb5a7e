"""
PaperDesk Poll Scheduler

Recurring tick driver with explicit start/stop/tick. The wait between
ticks is an injectable async trigger so tests can drive cycles by hand
instead of sleeping.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from utils.logger import feed_logger as logger

TickCallback = Callable[[], Awaitable[object]]
Trigger = Callable[[], Awaitable[None]]


class SchedulerState(str, Enum):
    """Scheduler lifecycle states."""
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


class PollScheduler:
    """
    Runs ``callback`` immediately on start and again after every trigger.

    At most one tick is in flight at a time: a manual ``tick()`` issued
    while another is running is skipped rather than queued.
    """

    def __init__(
        self,
        callback: TickCallback,
        interval_seconds: float = 10.0,
        trigger: Optional[Trigger] = None,
        name: str = "price-poll",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.name = name
        self._trigger = trigger or self._sleep
        self._task: Optional[asyncio.Task] = None
        self._in_flight = False
        self.state = SchedulerState.STOPPED
        self.ticks_run = 0
        self.ticks_skipped = 0
        self.ticks_failed = 0

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    async def _sleep(self) -> None:
        await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start the polling loop on the running event loop."""
        if self.state != SchedulerState.STOPPED:
            logger.warning(f"Cannot start scheduler {self.name} in state: {self.state.value}")
            return
        self.state = SchedulerState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.system(f"Scheduler {self.name} started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        """Cancel the loop and wait for it; no tick fires after this returns."""
        if self.state == SchedulerState.STOPPED:
            return
        self.state = SchedulerState.STOPPING
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.state = SchedulerState.STOPPED
        logger.system(f"Scheduler {self.name} stopped after {self.ticks_run} ticks")

    async def tick(self) -> bool:
        """
        Run one tick now.

        Returns:
            bool: False when skipped (stopped, or a tick already in flight)
        """
        if self.state != SchedulerState.RUNNING:
            return False
        if self._in_flight:
            self.ticks_skipped += 1
            logger.debug(f"Scheduler {self.name}: tick skipped, previous still running")
            return False

        self._in_flight = True
        try:
            await self.callback()
            self.ticks_run += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.ticks_failed += 1
            logger.exception(f"Scheduler {self.name}: tick failed: {e}")
        finally:
            self._in_flight = False
        return True

    async def _run(self) -> None:
        while self.state == SchedulerState.RUNNING:
            await self.tick()
            await self._trigger()
