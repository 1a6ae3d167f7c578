"""Slot pool - ownership of units of a capped, shared resource."""

from .config import PoolConfig, Modulation
from .handle import Resource, ResourceProvider
from .pool import SlotPool, PoolStatus
from .trace import OccupancyTrace, TraceSummary

__all__ = [
    "PoolConfig",
    "Modulation",
    "Resource",
    "ResourceProvider",
    "SlotPool",
    "PoolStatus",
    "OccupancyTrace",
    "TraceSummary",
]
