"""poolparty - covert telegraphy over a capped, shared resource pool."""

from .pool import PoolConfig, Modulation, SlotPool, Resource, ResourceProvider, OccupancyTrace
from .engine import (
    Clock,
    TelegraphEngine,
    TelegraphSession,
    Role,
    CycleResult,
    SessionMetrics,
)

__version__ = "0.1.0"

__all__ = [
    "PoolConfig",
    "Modulation",
    "SlotPool",
    "Resource",
    "ResourceProvider",
    "OccupancyTrace",
    "Clock",
    "TelegraphEngine",
    "TelegraphSession",
    "Role",
    "CycleResult",
    "SessionMetrics",
]
