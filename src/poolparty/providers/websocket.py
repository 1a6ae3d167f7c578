"""Streaming-socket slots: one WebSocket connection per slot."""

from typing import TYPE_CHECKING, Optional

from websockets.asyncio.client import connect
from websockets.protocol import State

from ..pool.handle import ResourceProvider

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection


class WebSocketProvider(ResourceProvider):
    """Hold slots of a connection-capped endpoint as open WebSockets.

    A handshake the endpoint refuses (HTTP 503 from ``CappedEchoServer``,
    or any connect error) fails the creation. A connection the endpoint
    accepts and then closes shows up as dead and is swept.
    """

    kind = "websocket"
    tracks_liveness = True

    def __init__(
        self,
        url: str,
        open_timeout: Optional[float] = 10.0,
        close_timeout: Optional[float] = 1.0,
    ):
        self.url = url
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout

    async def create(self) -> "ClientConnection":
        return await connect(
            self.url,
            open_timeout=self.open_timeout,
            close_timeout=self.close_timeout,
            ping_interval=None,
        )

    async def destroy(self, handle: "ClientConnection") -> None:
        await handle.close()

    def is_live(self, handle: "ClientConnection") -> bool:
        return handle.state is State.OPEN
