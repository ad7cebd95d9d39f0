"""printlink - discovery and connection management for network printers."""

from printlink.connectors import TcpPrinterConnector, discover, discover_printers
from printlink.core.config import ConfigManager
from printlink.core.errors import (
    AlreadyConnected,
    ConnectorError,
    ConnectRefused,
    ConnectTimeout,
    NetworkUnreachable,
    NotConnected,
    ProbeFailure,
    SocketClosedByPeer,
    WriteFailure,
)
from printlink.types import ConnectionStatus, DiscoveredPrinter, Endpoint, TcpPrinterInput

__version__ = "0.1.0"

__all__ = [
    "TcpPrinterConnector",
    "discover",
    "discover_printers",
    "ConfigManager",
    "ConnectionStatus",
    "DiscoveredPrinter",
    "Endpoint",
    "TcpPrinterInput",
    "ConnectorError",
    "AlreadyConnected",
    "ConnectRefused",
    "ConnectTimeout",
    "NetworkUnreachable",
    "NotConnected",
    "ProbeFailure",
    "SocketClosedByPeer",
    "WriteFailure",
]
