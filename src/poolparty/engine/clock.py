"""Wall-clock pulse scheduling."""

from typing import Awaitable, Callable, Optional
import asyncio
import math
import time


def wall_clock_ms() -> float:
    return time.time() * 1000


class Clock:
    """Aligns actions to a global grid of wall-clock instants.

    Two participants that share nothing but the system clock agree on a
    cycle start by rounding up to the same multiple of the grid
    interval. Skew between their clocks is not corrected: beyond one
    pulse it shows up as garbled digits on the receiving side.
    """

    def __init__(
        self,
        now_ms: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.now_ms = now_ms or wall_clock_ms
        self._sleep = sleep or asyncio.sleep

    async def sleep_ms(self, interval_ms: float) -> None:
        await self._sleep(max(0.0, interval_ms) / 1000)

    async def sleep_until(self, target_ms: float) -> float:
        """Suspend until ``target_ms``; returns the time on wake-up."""
        delay = target_ms - self.now_ms()
        if delay > 0:
            await self._sleep(delay / 1000)
        return self.now_ms()

    @staticmethod
    def next_grid_point(now_ms: float, interval_ms: float) -> float:
        return math.ceil(now_ms / interval_ms) * interval_ms

    async def align_to_grid(self, interval_ms: float) -> float:
        """Sleep until the next multiple of ``interval_ms`` and return it."""
        target = self.next_grid_point(self.now_ms(), interval_ms)
        await self.sleep_until(target)
        return target
