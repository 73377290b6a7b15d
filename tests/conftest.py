"""Pytest configuration and shared fixtures."""

import asyncio
import json
from typing import Any, Callable, Dict, List
from unittest.mock import Mock

import pytest
import pytest_asyncio

from jarmo_metrics.clients.udp_client import UDPSender
from jarmo_metrics.connection import Connection


class FakeConnection(Connection):
    """In-memory connection whose live count and disconnect are driven by tests."""

    def __init__(self, count: int = 1):
        self.count = count
        self.handlers: List[Callable[[], None]] = []

    def live_count(self) -> int:
        return self.count

    def on_disconnect(self, handler: Callable[[], None]) -> None:
        self.handlers.append(handler)

    def disconnect(self, count: int = None):
        """Fire the disconnect signal, as a misbehaving host might do repeatedly."""
        if count is not None:
            self.count = count
        for handler in list(self.handlers):
            handler()


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class CollectorProtocol(asyncio.DatagramProtocol):
    """Collects every received datagram into a queue."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data: bytes, addr):
        self.queue.put_nowait(data)


class UDPCollector:
    """Local stand-in for a Jarmo collector."""

    def __init__(self, transport: asyncio.DatagramTransport, protocol: CollectorProtocol):
        self.transport = transport
        self.protocol = protocol
        self.host, self.port = transport.get_extra_info('sockname')[:2]

    async def receive(self, timeout: float = 2.0) -> Dict[str, Any]:
        data = await asyncio.wait_for(self.protocol.queue.get(), timeout)
        return json.loads(data.decode('utf-8'))

    async def assert_silent(self, wait: float = 0.1):
        await asyncio.sleep(wait)
        assert self.protocol.queue.empty()

    def close(self):
        self.transport.close()


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection(count=3)


@pytest.fixture
def make_connection():
    """Factory for creating fake connections."""
    def _create_connection(count: int = 1) -> FakeConnection:
        return FakeConnection(count=count)
    return _create_connection


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_sender():
    """Mock UDP sender that records submissions without touching the network."""
    sender = Mock(spec=UDPSender)
    sender.send = Mock()
    return sender


@pytest_asyncio.fixture
async def udp_collector():
    """UDP collector listening on an ephemeral localhost port."""
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        CollectorProtocol, local_addr=('127.0.0.1', 0)
    )
    collector = UDPCollector(transport, protocol)
    yield collector
    collector.close()


@pytest_asyncio.fixture
async def udp_sender():
    sender = UDPSender()
    yield sender
    await sender.drain()
    sender.close()
