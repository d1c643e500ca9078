"""
Interval Scheduler

Runs an async job on every collection-interval boundary. The clock and sleep
functions are injected so the loop can be driven deterministically in tests.
Job failures are logged and never stop the loop; there is no catch-up for
missed boundaries and no retry of a failed run.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Job = Callable[[float], Awaitable[object]]


class IntervalScheduler:
    """Invoke ``job(now)`` at each multiple of ``interval`` seconds."""

    def __init__(self,
                 interval: int,
                 job: Job,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 run_on_start: bool = False):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.job = job
        self.clock = clock
        self.sleep = sleep
        self.run_on_start = run_on_start

        self.runs = 0
        self.failures = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def seconds_until_next(self, now: float) -> float:
        """Delay until the next interval boundary strictly after ``now``."""
        return self.interval - (now % self.interval)

    async def run_once(self, now: Optional[float] = None) -> None:
        """Run the job once at ``now``, defaulting to the current clock."""
        now = self.clock() if now is None else now
        try:
            await self.job(now)
        except Exception as e:
            self.failures += 1
            logger.exception(f"Scheduled job failed: {e}")
        finally:
            self.runs += 1

    async def _run_loop(self) -> None:
        if self.run_on_start:
            await self.run_once()

        boundary = None
        while self._running:
            now = self.clock()
            if boundary is not None:
                now = max(now, boundary)
            boundary = now + self.seconds_until_next(now)

            await self.sleep(max(0.0, boundary - self.clock()))
            if not self._running:
                break
            # the wall clock may still read just before the boundary after waking
            await self.run_once(max(self.clock(), boundary))

    def start(self) -> None:
        if self._running:
            logger.warning("IntervalScheduler is already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"IntervalScheduler started (every {self.interval}s)")

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("IntervalScheduler stopped")
