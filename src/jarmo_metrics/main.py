"""Instrumented websocket echo service reporting connection metrics to Jarmo."""

import asyncio
import logging
import os
import signal
import sys
from datetime import datetime, timezone
from typing import Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from .adapters.websockets_server import instrument
from .clients.udp_client import UDPSender
from .config.settings import load_config
from .interceptor import ConnectionInterceptor
from .utils.logging import setup_logging


logger = logging.getLogger(__name__)


async def echo(websocket: ServerConnection) -> None:
    """Echo every message back to the client."""
    try:
        async for message in websocket:
            await websocket.send(message)
    except ConnectionClosed:
        pass


class JarmoMetricsService:
    """Websocket server with connect/disconnect metrics shipped over UDP."""

    def __init__(self, config_file: str = "config/local.yaml"):
        self.config = load_config(config_file)
        self.sender: Optional[UDPSender] = None
        self.interceptor: Optional[ConnectionInterceptor] = None
        self.server: Optional[Server] = None
        self._shutdown_event = asyncio.Event()

        setup_logging(self.config.logging)
        logger.info("Jarmo Metrics Service initialized")

    async def start(self):
        """Serve until a shutdown signal arrives."""
        logger.info("Starting Jarmo Metrics Service")

        self.sender = UDPSender()
        self.interceptor = ConnectionInterceptor(
            self.config.to_interceptor_config(), sender=self.sender
        )

        self._setup_signal_handlers()

        try:
            async with serve(
                instrument(echo, self.interceptor),
                self.config.server.host,
                self.config.server.port
            ) as server:
                self.server = server
                logger.info(
                    f"Listening on ws://{self.config.server.host}:{self.config.server.port}"
                )
                await self._shutdown_event.wait()

                logger.info("Shutting down Jarmo Metrics Service")
                server.close()
                await server.wait_closed()
        finally:
            self._remove_signal_handlers()
            # Disconnect datagrams fire as the server closes its connections
            await self.sender.drain()
            self.sender.close()

        logger.info("Jarmo Metrics Service stopped")

    def stop(self):
        self._shutdown_event.set()

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            logger.info(f"Received signal {signum}, initiating shutdown")
            self.stop()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    def _remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)

    async def health_check(self) -> dict:
        """Report service health with interceptor and sender statistics."""
        health_status = {
            "service": "jarmo-metrics",
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {}
        }

        if self.interceptor:
            health_status["components"]["interceptor"] = self.interceptor.get_stats()

        if self.sender:
            sender_stats = self.sender.get_stats()
            health_status["components"]["udp_sender"] = sender_stats
            if sender_stats["send_errors"] and not sender_stats["datagrams_sent"]:
                health_status["status"] = "degraded"

        return health_status


async def main():
    """Main entry point."""
    config_file = os.getenv("CONFIG_FILE", "config/local.yaml")

    try:
        service = JarmoMetricsService(config_file)
        await service.start()
    except Exception as e:
        logger.error(f"Service failed: {e}", exc_info=True)
        sys.exit(1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
