"""Shared fixtures: a loopback printer server and a scripted prober."""

import asyncio
from typing import Callable, List, Optional

import pytest

from printlink.types.printers import ProbeOutcome


class FakePrinterServer:
    """Loopback TCP server standing in for a raw-port printer."""

    def __init__(self):
        self.server: Optional[asyncio.AbstractServer] = None
        self.port: Optional[int] = None
        self.received = bytearray()
        self.connections = 0
        self._writers: List[asyncio.StreamWriter] = []
        self.data_event = asyncio.Event()

    async def start(self) -> "FakePrinterServer":
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        try:
            while True:
                chunk = await reader.read(4096)
                if not chunk:
                    break
                self.received.extend(chunk)
                self.data_event.set()
        except (ConnectionError, asyncio.CancelledError):
            pass

    async def wait_for_bytes(self, count: int, timeout: float = 2.0) -> bytes:
        async def _wait():
            while len(self.received) < count:
                self.data_event.clear()
                await self.data_event.wait()

        await asyncio.wait_for(_wait(), timeout)
        return bytes(self.received)

    async def wait_for_connection(self, timeout: float = 2.0) -> None:
        async def _wait():
            while not self._writers:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_wait(), timeout)

    async def drop_clients(self) -> None:
        """Close every client connection from the printer's side."""
        await self.wait_for_connection()
        for writer in self._writers:
            writer.close()
        self._writers.clear()

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self.server:
            self.server.close()
            await self.server.wait_closed()


class FakeProber:
    """Prober double whose outcomes are emitted by the test."""

    instances: List["FakeProber"] = []

    def __init__(
        self,
        address: str,
        on_outcome: Callable[[ProbeOutcome], None],
        interval: float = 3.0,
        timeout: float = 7.0,
        privileged: bool = False,
    ):
        self.address = address
        self.interval = interval
        self.timeout = timeout
        self._on_outcome = on_outcome
        self.started = False
        self.stopped = False
        FakeProber.instances.append(self)

    def start(self) -> "FakeProber":
        self.started = True
        return self

    def stop(self) -> None:
        self.stopped = True

    def emit(self, alive: bool, error: Optional[str] = None) -> None:
        if self.stopped:
            return
        self._on_outcome(ProbeOutcome(address=self.address, alive=alive, error=error))


@pytest.fixture
async def printer_server():
    server = await FakePrinterServer().start()
    yield server
    await server.stop()


@pytest.fixture
async def closed_port():
    """A loopback port with nothing listening on it."""
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port


@pytest.fixture
def fake_prober():
    FakeProber.instances = []
    return FakeProber
