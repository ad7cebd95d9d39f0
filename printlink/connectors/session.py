"""TCP socket ownership for a single printer connection."""

import asyncio
import logging
from typing import Callable, Optional

from printlink.core.errors import (
    AlreadyConnected,
    ConnectRefused,
    ConnectTimeout,
    NetworkUnreachable,
)
from printlink.types.printers import DEFAULT_CONNECT_TIMEOUT, ConnectorEvent, Endpoint


logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096

SessionEventHandler = Callable[[ConnectorEvent, Optional[object]], None]


class ConnectionSession:
    """
    Owns one TCP socket to one printer.

    The session reports socket activity (inbound data, peer close, read
    errors, write failures) through on_event and never decides the
    connection status itself. Once closed it reports nothing further.
    """

    def __init__(self, endpoint: Endpoint, on_event: SessionEventHandler):
        self.endpoint = endpoint
        self._on_event = on_event

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._closed = False

        self.bytes_sent = 0
        self.bytes_received = 0

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._closed

    async def open(self, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> None:
        """
        Open the socket.

        Args:
            timeout: Seconds to wait for the connection

        Raises:
            ConnectTimeout: If the printer did not answer in time
            ConnectRefused: If the printer refused the connection
            NetworkUnreachable: For any other socket error
            AlreadyConnected: If the session was already opened
        """
        if self._writer is not None or self._closed:
            raise AlreadyConnected(f"Session to {self.endpoint} already used")

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.endpoint.address, self.endpoint.port),
                timeout,
            )
        except asyncio.TimeoutError as e:
            raise ConnectTimeout(f"Timed out connecting to {self.endpoint} after {timeout}s") from e
        except ConnectionRefusedError as e:
            raise ConnectRefused(f"Connection refused by {self.endpoint}") from e
        except OSError as e:
            raise NetworkUnreachable(f"Cannot reach {self.endpoint}: {e}") from e

        self._reader = reader
        self._writer = writer
        self._read_task = asyncio.create_task(self._read_loop())
        logger.info(f"Opened socket to {self.endpoint}")

    async def send(self, data: bytes) -> bool:
        """
        Write data to the printer.

        Returns:
            True if the data was written and flushed, False otherwise
        """
        if not self.is_open:
            return False

        try:
            if self._writer.transport.is_closing():
                raise ConnectionResetError("transport is closing")
            self._writer.write(bytes(data))
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            logger.warning(f"Write to {self.endpoint} failed: {e}")
            self._report(ConnectorEvent.WRITE_FAILED, e)
            self.abort()
            return False

        self.bytes_sent += len(data)
        return True

    def abort(self) -> None:
        """Forcibly close the socket without waiting."""
        if self._closed:
            return

        self._closed = True
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
        if self._writer is not None:
            transport = self._writer.transport
            if not transport.is_closing():
                transport.abort()
            logger.info(f"Closed socket to {self.endpoint}")

    async def close(self, linger: Optional[float] = None) -> None:
        """
        Close the socket.

        Args:
            linger: Seconds to wait after closing before returning
        """
        self.abort()
        if linger:
            await asyncio.sleep(linger)

    def _report(self, event: ConnectorEvent, detail: Optional[object] = None) -> None:
        if self._closed:
            return
        try:
            self._on_event(event, detail)
        except Exception as e:
            logger.error(f"Error handling session event {event.value}: {e}", exc_info=True)

    async def _read_loop(self) -> None:
        """Watch the socket for inbound bytes and closure."""
        try:
            while True:
                chunk = await self._reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    logger.info(f"Socket closed by {self.endpoint}")
                    self._report(ConnectorEvent.SOCKET_CLOSED)
                    break

                self.bytes_received += len(chunk)
                logger.debug(f"Received {len(chunk)} bytes from {self.endpoint}: {chunk[:64]!r}")
                self._report(ConnectorEvent.SOCKET_DATA, chunk)

        except asyncio.CancelledError:
            raise
        except (OSError, asyncio.IncompleteReadError) as e:
            logger.warning(f"Socket error from {self.endpoint}: {e}")
            self._report(ConnectorEvent.SOCKET_ERROR, e)
