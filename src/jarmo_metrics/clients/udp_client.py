"""Fire-and-forget UDP client for shipping metric payloads to a Jarmo collector."""

import asyncio
import json
import logging
import socket
from typing import Any, Callable, Dict, Optional, Set


logger = logging.getLogger(__name__)

SendCallback = Callable[[Optional[BaseException]], Any]


class UDPSender:
    """
    Sends JSON payloads as single UDP datagrams over one shared socket.

    A send is submitted as an asyncio task and never awaited by the caller.
    Handing the datagram to the kernel counts as success; there is no
    acknowledgment, retry, batching or timeout.
    """

    def __init__(self):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock.setblocking(False)
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

        self.stats = {
            "datagrams_sent": 0,
            "bytes_sent": 0,
            "send_errors": 0,
            "last_error": None
        }

        logger.debug("UDPSender initialized")

    def send(
        self,
        host: str,
        port: int,
        payload: Dict[str, Any],
        callback: Optional[SendCallback] = None
    ) -> asyncio.Task:
        """
        Submit a payload for delivery without waiting for it.

        Must be called from a running event loop.

        Args:
            host: Collector host name or address
            port: Collector UDP port
            payload: JSON-serializable mapping
            callback: Called with None on success or the raised exception

        Returns:
            The task performing the send; callers may ignore it
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._send(loop, host, port, payload))
        self._pending.add(task)
        task.add_done_callback(lambda t: self._complete(t, callback))
        return task

    async def _send(self, loop: asyncio.AbstractEventLoop, host: str, port: int,
                    payload: Dict[str, Any]) -> int:
        if self._closed:
            raise OSError("UDP sender is closed")

        data = json.dumps(payload, separators=(',', ':'), ensure_ascii=False).encode('utf-8')

        addresses = await loop.getaddrinfo(
            host, port, family=socket.AF_INET, type=socket.SOCK_DGRAM
        )
        address = addresses[0][4]

        await loop.sock_sendto(self._sock, data, address)
        return len(data)

    def _complete(self, task: asyncio.Task, callback: Optional[SendCallback]):
        self._pending.discard(task)

        if task.cancelled():
            return

        error = task.exception()
        if error is None:
            self.stats["datagrams_sent"] += 1
            self.stats["bytes_sent"] += task.result()
        else:
            self.stats["send_errors"] += 1
            self.stats["last_error"] = str(error)
            if callback is None:
                logger.warning(f"UDP send failed: {error}")

        if callback is not None:
            callback(error)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for every submitted send to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self):
        """Release the shared socket. Sends submitted afterwards fail."""
        if self._closed:
            return
        self._closed = True
        self._sock.close()
        logger.debug("UDPSender closed")

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, "pending": self.pending}
