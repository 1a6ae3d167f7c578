"""Handles on single units of a capped, shared resource."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
import itertools
import time


_ids = itertools.count(1)


@dataclass(eq=False)
class Resource:
    """One held slot of the shared resource.

    Identity-hashed: the pool stores these in an insertion-ordered
    dict, and two handles are never equal even if they wrap equal
    provider objects.
    """
    handle: Any                        # Provider-specific object (socket, response, process)
    kind: str
    created_at_ms: float = field(default_factory=lambda: time.time() * 1000)
    resource_id: int = field(default_factory=lambda: next(_ids))
    destroyed: bool = False


class ResourceProvider(ABC):
    """Strategy creating and destroying units of one resource kind.

    Subclasses implement ``create`` and ``destroy``. ``create`` raises
    when the unit cannot be obtained (typically because the cap was
    reached); the pool treats that as a routine, countable outcome.
    ``destroy`` is best effort.

    Providers that can observe a unit dying on its own (peer close,
    endpoint rejection after handshake) set ``tracks_liveness`` and
    override ``is_live``. Otherwise dead-slot sweeping is a no-op.
    """

    kind: str = "resource"
    tracks_liveness: bool = False

    @abstractmethod
    async def create(self) -> Any:
        """Obtain one unit, or raise if the endpoint refuses it."""

    @abstractmethod
    async def destroy(self, handle: Any) -> None:
        """Give the unit back."""

    def is_live(self, handle: Any) -> bool:
        return True

    async def aclose(self) -> None:
        """Release provider-wide state (HTTP clients and the like)."""

    async def acquire(self) -> Resource:
        """Create one unit and wrap it in a ``Resource``."""
        handle = await self.create()
        return Resource(handle=handle, kind=self.kind)
