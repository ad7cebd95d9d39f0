"""Type definitions for printlink."""

from .printers import (
    ConnectionStatus,
    ConnectorEvent,
    DiscoveredPrinter,
    Endpoint,
    ProbeOutcome,
    TcpPrinterInput,
)

__all__ = [
    "ConnectionStatus",
    "ConnectorEvent",
    "DiscoveredPrinter",
    "Endpoint",
    "ProbeOutcome",
    "TcpPrinterInput",
]
