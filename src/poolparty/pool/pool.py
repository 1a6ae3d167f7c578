"""Slot pool - bounded, observable ownership of capped resource units."""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional
import asyncio
import logging

from .config import PoolConfig
from .handle import Resource, ResourceProvider
from .trace import OccupancyTrace

logger = logging.getLogger(__name__)


@dataclass
class PoolStatus:
    """Current state of the slot pool."""
    kind: str
    held: int
    max_slots: int
    trace_samples: int

    @property
    def occupancy_ratio(self) -> float:
        if self.max_slots == 0:
            return 0.0
        return self.held / self.max_slots


class SlotPool:
    """Owns the set of slots this participant currently holds.

    The pool:
    1. Creates slots concurrently, tolerating individual rejections
    2. Destroys slots in deterministic (insertion) order
    3. Sweeps slots the provider reports dead
    4. Probes for headroom without retaining it
    5. Records the held count after every state change

    Single-threaded: all calls are made from one event loop, and no two
    pool operations of one participant overlap. Only the individual
    create/destroy calls inside one batch run concurrently.
    """

    def __init__(
        self,
        provider: ResourceProvider,
        config: Optional[PoolConfig] = None,
        trace: Optional[OccupancyTrace] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.provider = provider
        self.config = config or PoolConfig()
        self.trace = trace if trace is not None else OccupancyTrace()
        self._sleep = sleep or asyncio.sleep

        # Insertion-ordered set
        self._held: Dict[Resource, None] = {}

    def __len__(self) -> int:
        return len(self._held)

    @property
    def held_count(self) -> int:
        return len(self._held)

    @property
    def resources(self) -> List[Resource]:
        return list(self._held)

    def capture(self) -> None:
        self.trace.record(len(self._held))

    async def _settle(self) -> None:
        # Always yield, even with a zero settling time, so that pending
        # provider callbacks run before the pool is sampled.
        await self._sleep(self.config.settling_time_ms / 1000)

    async def _attempt_create(self) -> Resource:
        timeout = self.config.create_timeout_ms / 1000 or None
        return await asyncio.wait_for(self.provider.acquire(), timeout=timeout)

    async def _destroy(self, resource: Resource) -> None:
        if resource.destroyed:
            return
        resource.destroyed = True
        timeout = self.config.destroy_timeout_ms / 1000 or None
        try:
            await asyncio.wait_for(self.provider.destroy(resource.handle), timeout=timeout)
        except Exception as exc:
            # Treated as released regardless
            logger.debug("destroy of %s #%d failed: %r", resource.kind, resource.resource_id, exc)

    def _adopt(self, resource: Resource) -> None:
        self._held[resource] = None
        self.capture()

    async def _destroy_all(self, resources: List[Resource]) -> None:
        if resources:
            await asyncio.shield(asyncio.gather(*(self._destroy(r) for r in resources)))

    async def consume(self, max_count: int) -> int:
        """Try to create up to ``max_count`` slots; return the net change in held count."""
        self.capture()
        start = len(self._held)
        if max_count <= 0:
            return 0

        tasks = [asyncio.ensure_future(self._attempt_create()) for _ in range(max_count)]
        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            # Keep whatever was already created so a later drain destroys it
            for task in tasks:
                if task.done() and not task.cancelled() and task.exception() is None:
                    self._adopt(task.result())
            raise

        failures = 0
        for result in results:
            if isinstance(result, Resource):
                self._adopt(result)
            else:
                failures += 1

        await self._settle()
        await self.sweep_dead()
        finish = len(self._held)
        self.capture()
        logger.debug(
            "consume(%d): %d created, %d rejected, held %d -> %d",
            max_count, max_count - failures, failures, start, finish,
        )
        return finish - start

    async def release(self, max_count: int) -> int:
        """Destroy up to ``max_count`` held slots, oldest first; return the count released."""
        self.capture()
        if max_count <= 0:
            return 0
        victims = list(self._held)[:min(max_count, len(self._held))]
        await self._release_resources(victims)
        logger.debug("release(%d): released %d, held %d", max_count, len(victims), len(self._held))
        return len(victims)

    async def _release_resources(self, victims: List[Resource]) -> None:
        for resource in victims:
            self._held.pop(resource, None)
            self.capture()
        await self._destroy_all(victims)
        await self._settle()
        self.capture()

    def _collect_dead(self) -> List[Resource]:
        if not self.provider.tracks_liveness:
            return []
        dead = [
            r for r in self._held
            if r.destroyed or not self.provider.is_live(r.handle)
        ]
        for resource in dead:
            del self._held[resource]
        return dead

    async def sweep_dead(self) -> int:
        """Remove dead slots, destroying them first; return how many were removed."""
        dead = self._collect_dead()
        if dead:
            self.capture()
            await self._destroy_all(dead)
            logger.debug("swept %d dead %s slot(s)", len(dead), self.provider.kind)
        return len(dead)

    async def probe(self, max_count: int) -> int:
        """Consume up to ``max_count``, release exactly those, return how many were obtained."""
        before = set(self._held)
        await self.consume(max_count)
        fresh = [r for r in self._held if r not in before]
        if fresh:
            await self._release_resources(fresh)
        return len(fresh)

    async def drain(self) -> int:
        """Release everything held. Safe to call repeatedly."""
        released = 0
        while self._held:
            released += await self.release(len(self._held))
        if released:
            logger.debug("drained %d %s slot(s)", released, self.provider.kind)
        return released

    def status(self) -> PoolStatus:
        return PoolStatus(
            kind=self.provider.kind,
            held=len(self._held),
            max_slots=self.config.max_slots,
            trace_samples=len(self.trace),
        )
