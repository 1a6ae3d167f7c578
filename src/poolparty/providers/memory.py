"""In-process capped endpoint for tests and demos."""

from dataclasses import dataclass
from typing import List, Optional
import asyncio
import itertools

from ..pool.handle import ResourceProvider


class SlotRejected(Exception):
    """The endpoint refused a slot because its cap was reached."""


@dataclass(eq=False)
class MemorySlot:
    """A slot granted by a ``CappedEndpoint``."""
    slot_id: int
    owner: str
    open: bool = True


class CappedEndpoint:
    """Shared capacity that any number of providers compete for.

    Plays the role of a remote endpoint enforcing a maximum number of
    concurrent connections. Participants share one instance.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._open: List[MemorySlot] = []
        self._ids = itertools.count(1)
        self.rejections = 0

    @property
    def in_use(self) -> int:
        return len(self._open)

    @property
    def available(self) -> int:
        return self.capacity - len(self._open)

    def open_slot(self, owner: str) -> MemorySlot:
        if len(self._open) >= self.capacity:
            self.rejections += 1
            raise SlotRejected(f"endpoint cap of {self.capacity} reached")
        slot = MemorySlot(slot_id=next(self._ids), owner=owner)
        self._open.append(slot)
        return slot

    def close_slot(self, slot: MemorySlot) -> None:
        if slot.open:
            slot.open = False
            self._open.remove(slot)

    def evict(self, count: int, owner: Optional[str] = None) -> int:
        """Close up to ``count`` slots from the endpoint side (newest first)."""
        victims = [s for s in reversed(self._open) if owner is None or s.owner == owner]
        victims = victims[:count]
        for slot in victims:
            self.close_slot(slot)
        return len(victims)

    def held_by(self, owner: str) -> int:
        return sum(1 for s in self._open if s.owner == owner)


class InMemoryProvider(ResourceProvider):
    """Provider drawing slots from a shared ``CappedEndpoint``.

    ``create_latency_ms`` delays each creation to exercise the pool's
    concurrent batching; evicted slots report as dead.
    """

    kind = "memory"
    tracks_liveness = True

    def __init__(
        self,
        endpoint: CappedEndpoint,
        owner: str = "participant",
        create_latency_ms: float = 0,
    ):
        self.endpoint = endpoint
        self.owner = owner
        self.create_latency_ms = create_latency_ms

    async def create(self) -> MemorySlot:
        if self.create_latency_ms:
            await asyncio.sleep(self.create_latency_ms / 1000)
        return self.endpoint.open_slot(self.owner)

    async def destroy(self, handle: MemorySlot) -> None:
        self.endpoint.close_slot(handle)

    def is_live(self, handle: MemorySlot) -> bool:
        return handle.open
