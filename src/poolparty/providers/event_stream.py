"""Event-stream slots: one open ``text/event-stream`` response per slot."""

from dataclasses import dataclass
from typing import Dict, Optional
import asyncio
import logging

import httpx

from ..pool.handle import ResourceProvider

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class EventStream:
    """An open streaming response and the task draining its body."""
    response: httpx.Response
    reader: Optional[asyncio.Task] = None
    ended: bool = False


class EventStreamProvider(ResourceProvider):
    """Hold slots as long-lived streaming GET responses.

    The client itself is unlimited; the cap being probed is the one
    enforced by the endpoint (or by whatever sits in front of it). Any
    non-2xx status fails the creation. Each held stream is read in the
    background so that a stream the endpoint ends reports as dead.
    """

    kind = "event_stream"
    tracks_liveness = True

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        connect_timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        self.headers.update(headers or {})
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=connect_timeout),
            limits=httpx.Limits(max_connections=None, max_keepalive_connections=0),
        )

    async def _read_until_end(self, stream: EventStream) -> None:
        try:
            async for _ in stream.response.aiter_raw():
                pass
        except httpx.HTTPError as exc:
            logger.debug("event stream from %s failed: %r", self.url, exc)
        finally:
            stream.ended = True

    async def create(self) -> EventStream:
        request = self._client.build_request("GET", self.url, headers=self.headers)
        response = await self._client.send(request, stream=True)
        if response.is_error:
            await response.aclose()
            response.raise_for_status()
        stream = EventStream(response=response)
        stream.reader = asyncio.ensure_future(self._read_until_end(stream))
        return stream

    async def destroy(self, handle: EventStream) -> None:
        if handle.reader is not None and not handle.reader.done():
            handle.reader.cancel()
            await asyncio.wait([handle.reader])
        await handle.response.aclose()

    def is_live(self, handle: EventStream) -> bool:
        return not handle.ended and not handle.response.is_closed

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
