"""Adapter exposing ``websockets`` asyncio server connections to the interceptor."""

import asyncio
import functools
import logging
from typing import Awaitable, Callable, Optional

from websockets.asyncio.server import Server, ServerConnection

from ..connection import Connection
from ..interceptor import ConnectionInterceptor


logger = logging.getLogger(__name__)

Handler = Callable[[ServerConnection], Awaitable[None]]


class WebSocketConnection(Connection):
    """
    ``Connection`` backed by a websockets ``ServerConnection``.

    ``Server.connections`` only includes connections in the OPEN state, so
    the live count read after a disconnect already excludes the client that
    just left.
    """

    def __init__(self, websocket: ServerConnection, server: Optional[Server] = None):
        self.websocket = websocket
        self.server = server if server is not None else websocket.server
        self._watcher: Optional[asyncio.Task] = None

    def live_count(self) -> int:
        return len(self.server.connections)

    def on_disconnect(self, handler: Callable[[], None]) -> None:
        if self._watcher is not None:
            raise RuntimeError("disconnect handler already registered")

        self._watcher = asyncio.get_running_loop().create_task(self._watch(handler))

    async def _watch(self, handler: Callable[[], None]):
        await self.websocket.wait_closed()
        try:
            handler()
        except Exception as e:
            logger.error(f"Disconnect handler failed: {e}", exc_info=True)


def instrument(handler: Handler, interceptor: ConnectionInterceptor) -> Handler:
    """
    Wrap a websockets connection handler with the interceptor.

    Example:
        interceptor = jarmo({"host": "metrics.internal", "port": 8000})
        async with serve(instrument(echo, interceptor), "0.0.0.0", 8765):
            ...
    """

    @functools.wraps(handler)
    async def instrumented(websocket: ServerConnection) -> None:
        connection = WebSocketConnection(websocket)
        await interceptor(connection, lambda: handler(websocket))

    return instrumented
