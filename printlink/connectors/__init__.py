"""Printer connectors."""

from .base import PrinterConnector
from .session import ConnectionSession
from .tcp import TcpPrinterConnector, discover, discover_printers

__all__ = [
    "PrinterConnector",
    "ConnectionSession",
    "TcpPrinterConnector",
    "discover",
    "discover_printers",
]
