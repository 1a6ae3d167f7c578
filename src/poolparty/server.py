"""Local WebSocket echo endpoint with a concurrent-connection cap.

Stands in for a remote endpoint during demos and integration tests.
Handshakes beyond the cap are refused with HTTP 503, which fails the
client's slot creation.
"""

from http import HTTPStatus
from typing import Optional, Set
import logging

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

logger = logging.getLogger(__name__)


class CappedEchoServer:
    """Echo every message back; admit at most ``max_connections`` at once."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0, max_connections: int = 255):
        self.host = host
        self.port = port
        self.max_connections = max_connections
        self.rejected = 0
        self._admitted: Set[ServerConnection] = set()
        self._server: Optional[Server] = None

    @property
    def active(self) -> int:
        return len(self._admitted)

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}/websockets"

    def _admit(self, connection: ServerConnection, request):
        # Forget handshakes that never completed
        self._admitted = {c for c in self._admitted if c.state is not State.CLOSED}
        if len(self._admitted) >= self.max_connections:
            self.rejected += 1
            return connection.respond(HTTPStatus.SERVICE_UNAVAILABLE, "slot cap reached\n")
        self._admitted.add(connection)
        return None

    async def _handler(self, connection: ServerConnection) -> None:
        try:
            async for message in connection:
                await connection.send(message)
        except ConnectionClosed:
            pass
        finally:
            self._admitted.discard(connection)

    async def start(self) -> "CappedEchoServer":
        self._server = await serve(
            self._handler,
            self.host,
            self.port,
            process_request=self._admit,
            ping_interval=None,
        )
        if self.port == 0:
            self.port = next(iter(self._server.sockets)).getsockname()[1]
        logger.info("Capped echo server on %s (cap %d)", self.url, self.max_connections)
        return self

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def __aenter__(self) -> "CappedEchoServer":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
