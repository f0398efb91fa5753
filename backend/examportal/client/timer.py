"""
Countdown for one exam attempt.

The deadline is an absolute timestamp fixed when the attempt is first loaded
and persisted with the local progress, so reloading recomputes the remaining
time from the same deadline instead of restarting the clock.
"""
import asyncio
import logging
import math
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0


class ExamTimer:

    def __init__(self, deadline: float, on_tick: Optional[Callable[[int], None]] = None,
                 on_expire: Optional[Callable[[], None]] = None, clock: Callable[[], float] = time.time):
        self.deadline = float(deadline)
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.clock = clock
        self._remaining: Optional[int] = None
        self._expired = False
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_duration(cls, seconds: int, clock: Callable[[], float] = time.time, **kwargs) -> "ExamTimer":
        return cls(clock() + seconds, clock=clock, **kwargs)

    @property
    def remaining(self) -> int:
        if self._remaining is None:
            return self._compute()
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _compute(self) -> int:
        return max(0, math.ceil(self.deadline - self.clock()))

    def tick(self) -> int:
        """Recompute the remaining seconds; fires on_expire once when it reaches zero."""
        if self._expired:
            return 0

        remaining = self._compute()
        if self._remaining is not None:
            # a clock moving backwards must not hand out extra time
            remaining = min(remaining, self._remaining)
        self._remaining = remaining

        if remaining <= 0:
            self._expired = True
            logger.info("Exam time expired")
            if self.on_expire is not None:
                self.on_expire()
            return 0

        if self.on_tick is not None:
            self.on_tick(remaining)
        return remaining

    async def _run(self):
        while not self._expired:
            self.tick()
            if self._expired:
                break
            await asyncio.sleep(TICK_SECONDS)

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
