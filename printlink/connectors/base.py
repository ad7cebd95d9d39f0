"""Printer connector base class."""

from abc import ABC, abstractmethod
from typing import Optional

from printlink.core.status import StatusStream
from printlink.types.printers import ConnectionStatus


class PrinterConnector(ABC):
    """
    Base class for printer connectors.

    A connector manages at most one connection at a time and publishes
    every status change on its status stream.
    """

    def __init__(self):
        self._status = ConnectionStatus.NONE
        self._status_stream = StatusStream()

    @property
    def status(self) -> ConnectionStatus:
        """Current connection status."""
        return self._status

    @property
    def status_stream(self) -> StatusStream:
        """Observable stream of status changes."""
        return self._status_stream

    @abstractmethod
    async def connect(self, *args, **kwargs) -> bool:
        """
        Connect to a printer.

        Returns:
            True if the connection was established
        """
        pass

    @abstractmethod
    async def send(self, data: bytes) -> bool:
        """
        Send raw bytes to the connected printer.

        Returns:
            True if the bytes were written
        """
        pass

    @abstractmethod
    async def disconnect(self, delay_ms: Optional[int] = None) -> bool:
        """
        Disconnect from the printer.

        Args:
            delay_ms: Milliseconds to wait after closing before reporting
                the connection as gone
        """
        pass
