"""
Fixed-rate interval timer that skips missed ticks instead of queuing them
"""

import asyncio
import logging

logger = logging.getLogger(__name__)

class IntervalTimer:
    """
    Ticks at start + n * period.

    The first tick() returns immediately. When the caller's work overruns one
    or more periods the missed deadlines are dropped and the next tick waits
    for the next future deadline, so a slow device never builds a backlog.
    """

    def __init__(self, period: float, name: str = "interval"):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.period = period
        self.name = name
        self.skipped = 0
        self._deadline = None

    async def tick(self) -> None:
        loop = asyncio.get_running_loop()
        now = loop.time()

        if self._deadline is None:
            self._deadline = now + self.period
            return

        if now > self._deadline + self.period:
            missed = int((now - self._deadline) // self.period)
            self._deadline += missed * self.period
            self.skipped += missed
            logger.warning(f"{self.name}: work overran by {missed} period(s) of {self.period}s, skipping missed ticks")

        await asyncio.sleep(max(0.0, self._deadline - now))
        self._deadline += self.period
