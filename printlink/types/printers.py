"""Printer connection types and enumerations."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_PORT = 9100
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_DISCOVERY_TIMEOUT = 4.0


class ConnectionStatus(str, Enum):
    """Connection status enumeration."""

    NONE = "none"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectorEvent(str, Enum):
    """Asynchronous signals fed back into the connector."""

    SOCKET_DATA = "socket_data"
    SOCKET_CLOSED = "socket_closed"
    SOCKET_ERROR = "socket_error"
    WRITE_FAILED = "write_failed"
    PROBE_REPLY = "probe_reply"
    PROBE_ERROR = "probe_error"


class Endpoint(BaseModel):
    """A network-reachable printer address."""

    address: str
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


class DiscoveredPrinter(BaseModel):
    """Printer candidate found during a subnet scan."""

    name: str
    endpoint: Endpoint

    model_config = {"frozen": True}

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint) -> "DiscoveredPrinter":
        return cls(name=str(endpoint), endpoint=endpoint)

    @property
    def address(self) -> str:
        return self.endpoint.address

    @property
    def port(self) -> int:
        return self.endpoint.port


class TcpPrinterInput(BaseModel):
    """Connection request for a TCP printer."""

    address: str = Field(..., description="Printer IPv4 address")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    timeout: float = Field(DEFAULT_CONNECT_TIMEOUT, gt=0, description="Connect timeout in seconds")

    @field_validator("address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("address must not be empty")
        return value

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(address=self.address, port=self.port)


class ProbeOutcome(BaseModel):
    """Result of a single liveness probe."""

    address: str
    alive: bool
    rtt_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return not self.alive
