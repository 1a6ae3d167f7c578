"""Telegraphy session - repeated cycles with guaranteed drain."""

from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging
import random

from ..pool import OccupancyTrace, PoolConfig, ResourceProvider, SlotPool
from .classifier import Role
from .clock import Clock
from .protocol import CycleResult, TelegraphEngine
from .sink import ResultSink

logger = logging.getLogger(__name__)


@dataclass
class SessionMetrics:
    """Metrics tracked across a session."""
    total_cycles: int = 0
    sent: int = 0
    received: int = 0
    invalid: int = 0
    sink_failures: int = 0
    avg_cycle_time_ms: float = 0.0
    results: List[CycleResult] = field(default_factory=list)

    @property
    def valid_receive_rate(self) -> float:
        if self.received == 0:
            return 0.0
        return (self.received - self.invalid) / self.received

    def record(self, result: CycleResult) -> None:
        self.total_cycles += 1
        if result.role == Role.SENDER:
            self.sent += 1
        else:
            self.received += 1
            if not result.valid:
                self.invalid += 1
        self.avg_cycle_time_ms = (
            self.avg_cycle_time_ms * (self.total_cycles - 1) + result.elapsed_ms
        ) / self.total_cycles
        self.results.append(result)


class TelegraphSession:
    """One participant's session: a pool, an engine and a run loop.

    Use as an async context manager; leaving the block (normally, on
    error or on cancellation) drains every held slot and closes the
    provider and sink.

        async with TelegraphSession(provider, PoolConfig.for_chrome()) as session:
            metrics = await session.run(cycles=10)
    """

    def __init__(
        self,
        provider: ResourceProvider,
        config: Optional[PoolConfig] = None,
        clock: Optional[Clock] = None,
        sink: Optional[ResultSink] = None,
        on_cycle_complete: Optional[Callable[[CycleResult], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or PoolConfig()
        self.clock = clock or Clock()
        self.provider = provider
        self.trace = OccupancyTrace(now_ms=self.clock.now_ms)
        self.pool = SlotPool(provider, self.config, trace=self.trace)
        self.engine = TelegraphEngine(self.pool, self.config, clock=self.clock, rng=rng)
        self.sink = sink
        self.on_cycle_complete = on_cycle_complete
        self.metrics = SessionMetrics()
        self._running = False
        self._closed = False

    async def __aenter__(self) -> "TelegraphSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _report(self, result: CycleResult) -> None:
        if self.on_cycle_complete:
            self.on_cycle_complete(result)
        if self.sink is None:
            return
        try:
            await self.sink.submit(result)
        except Exception as exc:
            self.metrics.sink_failures += 1
            logger.warning("Result sink failed: %r", exc)

    async def run_cycle(self, value: Optional[int] = None) -> CycleResult:
        result = await self.engine.run_cycle(value)
        self.metrics.record(result)
        await self._report(result)
        return result

    async def run(self, cycles: int = 10, value: Optional[int] = None) -> SessionMetrics:
        """Run ``cycles`` cycles, then drain, even if interrupted."""
        self._running = True
        try:
            for _ in range(cycles):
                if not self._running:
                    break
                await self.run_cycle(value)
        finally:
            self._running = False
            self.trace.record(self.pool.held_count)
            await self.engine.drain()
        return self.metrics

    def stop(self):
        """Stop after the current cycle."""
        self._running = False

    async def close(self) -> None:
        """Drain and release provider and sink. Idempotent."""
        await self.engine.drain()
        if self._closed:
            return
        self._closed = True
        await self.provider.aclose()
        if self.sink is not None:
            await self.sink.aclose()
