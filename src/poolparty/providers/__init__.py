"""Resource providers - one strategy per kind of capped resource."""

from typing import Optional

from .memory import CappedEndpoint, InMemoryProvider, MemorySlot, SlotRejected
from .websocket import WebSocketProvider
from .event_stream import EventStream, EventStreamProvider
from .worker import WorkerProvider

__all__ = [
    "CappedEndpoint",
    "InMemoryProvider",
    "MemorySlot",
    "SlotRejected",
    "WebSocketProvider",
    "EventStream",
    "EventStreamProvider",
    "WorkerProvider",
]


def build_provider(kind: str, url: Optional[str] = None, **kwargs):
    """Construct a network provider by kind name."""
    if kind == "websocket":
        return WebSocketProvider(url, **kwargs)
    if kind == "event_stream":
        return EventStreamProvider(url, **kwargs)
    if kind == "worker":
        return WorkerProvider(**kwargs)
    raise ValueError(f"Unknown resource kind: {kind!r}")
