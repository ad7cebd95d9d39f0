"""TCP/IP printer connector: discovery and a single managed connection."""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

from printlink.core.errors import (
    AlreadyConnected,
    ConnectorError,
    NotConnected,
    ProbeFailure,
    SocketClosedByPeer,
    WriteFailure,
)
from printlink.network.local_address import get_local_ipv4, subnet_prefix
from printlink.network.prober import DEFAULT_INTERVAL, DEFAULT_TIMEOUT, LivenessProber
from printlink.network.scanner import SubnetScanner
from printlink.types.printers import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_PORT,
    ConnectionStatus,
    ConnectorEvent,
    DiscoveredPrinter,
    Endpoint,
    ProbeOutcome,
    TcpPrinterInput,
)

from .base import PrinterConnector
from .session import ConnectionSession


logger = logging.getLogger(__name__)

_TEARDOWN_ERRORS = {
    ConnectorEvent.SOCKET_CLOSED: SocketClosedByPeer,
    ConnectorEvent.SOCKET_ERROR: SocketClosedByPeer,
    ConnectorEvent.WRITE_FAILED: WriteFailure,
    ConnectorEvent.PROBE_ERROR: ProbeFailure,
}


class TcpPrinterConnector(PrinterConnector):
    """
    Connector for network printers speaking raw TCP (port 9100).

    Discovery scans the local /24 subnet. A connection pairs one socket
    session with one liveness prober; socket closure, socket errors,
    write failures and failed probes all end in the same teardown, which
    runs at most once per connection.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        scanner: Optional[SubnetScanner] = None,
        address_provider: Callable[..., Optional[str]] = get_local_ipv4,
        prober_factory: Callable[..., LivenessProber] = LivenessProber,
        name: str = "tcp",
    ):
        """
        Initialize TCP printer connector.

        Args:
            config: Connector configuration (see ConfigManager.get_connector_config)
            scanner: Subnet scanner used for discovery
            address_provider: Returns the local IPv4 address, or None
            prober_factory: Creates the liveness prober for a connection
            name: Connector name used for its logger
        """
        super().__init__()
        self.config = config or {}

        self.port = self.config.get("port", DEFAULT_PORT)
        self.discovery_port = self.config.get("discovery_port", self.port)
        self.connect_timeout = self.config.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT)
        self.discovery_timeout = self.config.get("discovery_timeout", DEFAULT_DISCOVERY_TIMEOUT)
        self.interface = self.config.get("interface")
        self.probe_enabled = self.config.get("probe_enabled", True)
        self.probe_interval = self.config.get("probe_interval", DEFAULT_INTERVAL)
        self.probe_timeout = self.config.get("probe_timeout", DEFAULT_TIMEOUT)
        self.probe_privileged = self.config.get("probe_privileged", False)

        self.scanner = scanner or SubnetScanner(
            timeout=self.discovery_timeout,
            max_concurrency=self.config.get("max_concurrency", 254),
        )
        self._address_provider = address_provider
        self._prober_factory = prober_factory

        self._session: Optional[ConnectionSession] = None
        self._prober: Optional[LivenessProber] = None
        self._connecting = False

        self.last_error: Optional[ConnectorError] = None
        self._logger = logging.getLogger(f"connector.{name}")

    @property
    def status(self) -> ConnectionStatus:
        if self._connecting:
            return ConnectionStatus.CONNECTING
        return self._status

    @property
    def endpoint(self) -> Optional[Endpoint]:
        """Endpoint of the active connection, if any."""
        return self._session.endpoint if self._session else None

    # Discovery

    async def discover(
        self,
        address: Optional[str] = None,
        port: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[DiscoveredPrinter]:
        """
        Scan the local subnet, yielding printers as they answer.

        Args:
            address: Any address in the subnet to scan; defaults to this
                machine's own address
            port: TCP port to probe (default: the configured discovery port)
            timeout: Per-host timeout in seconds

        Yields:
            DiscoveredPrinter for each responding host
        """
        port = port or self.discovery_port
        local_ip = address or self._resolve_local_address()
        if local_ip is None:
            logger.warning("Skipping discovery: local IPv4 address unknown")
            return

        prefix = subnet_prefix(local_ip)
        scan = self.scanner.scan(prefix, port, timeout if timeout is not None else self.discovery_timeout)
        try:
            async for endpoint in scan:
                printer = DiscoveredPrinter.from_endpoint(endpoint)
                logger.info(f"Discovered printer: {printer.name}")
                yield printer
        finally:
            await scan.aclose()

    async def discover_printers(
        self,
        address: Optional[str] = None,
        port: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[DiscoveredPrinter]:
        """Run a full scan and return every printer found."""
        return [printer async for printer in self.discover(address, port, timeout)]

    def _resolve_local_address(self) -> Optional[str]:
        if self.interface:
            return self._address_provider(self.interface)
        return self._address_provider()

    # Connection

    async def connect(
        self,
        target: Union[str, TcpPrinterInput],
        port: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Connect to a printer.

        Rejected while a connection is active or another connect is in
        flight.

        Args:
            target: Printer address or a TcpPrinterInput
            port: TCP port (ignored when target is a TcpPrinterInput)
            timeout: Connect timeout in seconds (ignored when target is a
                TcpPrinterInput)

        Returns:
            True if connected; on failure the reason is in last_error
        """
        if isinstance(target, TcpPrinterInput):
            request = target
        else:
            request = TcpPrinterInput(
                address=target,
                port=port or self.port,
                timeout=timeout or self.connect_timeout,
            )

        if self.status != ConnectionStatus.NONE or self._session is not None:
            self._fail(AlreadyConnected(f"Cannot connect to {request.endpoint}: status is {self.status.value}"))
            return False

        session = ConnectionSession(
            request.endpoint,
            lambda event, detail: self._dispatch(event, detail, session),
        )

        self._connecting = True
        try:
            await session.open(request.timeout)
        except ConnectorError as e:
            self._fail(e)
            return False
        finally:
            self._connecting = False

        self._session = session
        self._set_status(ConnectionStatus.CONNECTED)

        if self.probe_enabled:
            prober = self._prober_factory(
                request.address,
                lambda outcome: self._handle_probe(outcome, prober),
                interval=self.probe_interval,
                timeout=self.probe_timeout,
                privileged=self.probe_privileged,
            )
            self._prober = prober.start()

        return True

    async def send(self, data: bytes) -> bool:
        """
        Send raw bytes to the connected printer.

        A write failure tears the connection down.
        """
        session = self._session
        if self.status != ConnectionStatus.CONNECTED or session is None:
            self._fail(NotConnected("Cannot send: no active printer connection"))
            return False

        if await session.send(data):
            return True

        if session is self._session:
            self.last_error = WriteFailure(f"Write to {session.endpoint} failed")
            self._teardown(session)
        return False

    async def disconnect(self, delay_ms: Optional[int] = None) -> bool:
        """
        Close the connection and report NONE.

        A connection opened while the delay runs is left alone.

        Args:
            delay_ms: Milliseconds to wait after closing the socket before
                the status changes to NONE

        Returns:
            Always True
        """
        session, prober = self._detach()
        if prober:
            prober.stop()

        delay = delay_ms / 1000.0 if delay_ms else None
        if session:
            self._logger.info(f"Disconnecting from {session.endpoint}")
            await session.close(delay)
        elif delay:
            await asyncio.sleep(delay)

        if self._session is None and not self._connecting:
            self._set_status(ConnectionStatus.NONE)
        return True

    async def close(self) -> None:
        """Disconnect and end all status subscriptions."""
        await self.disconnect()
        self._status_stream.close()

    async def __aenter__(self) -> "TcpPrinterConnector":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # State machine

    def _dispatch(
        self,
        event: ConnectorEvent,
        detail: Optional[object] = None,
        source: Optional[object] = None,
    ) -> None:
        """Single decision point for every asynchronous connection signal."""
        if source is not None and source is not self._session and source is not self._prober:
            logger.debug(f"Ignoring {event.value} from a detached handle")
            return

        error_type = _TEARDOWN_ERRORS.get(event)
        if error_type is None:
            return

        if self._session is None:
            return

        message = f"{event.value} on {self._session.endpoint}"
        if detail is not None:
            message = f"{message}: {detail}"
        self.last_error = error_type(message)
        self._teardown(self._session)

    def _handle_probe(self, outcome: ProbeOutcome, prober: LivenessProber) -> None:
        event = ConnectorEvent.PROBE_ERROR if outcome.is_error else ConnectorEvent.PROBE_REPLY
        self._dispatch(event, outcome.error, prober)

    def _teardown(self, session: ConnectionSession) -> None:
        """
        Stop probing, destroy the socket and publish NONE.

        Runs without suspending, so two causes arriving together produce
        one transition.
        """
        if session is not self._session:
            return

        session, prober = self._detach()
        if prober:
            prober.stop()
        if session:
            session.abort()
            self._logger.warning(f"Connection to {session.endpoint} lost: {self.last_error}")

        self._set_status(ConnectionStatus.NONE)

    def _detach(self):
        session, prober = self._session, self._prober
        self._session = None
        self._prober = None
        return session, prober

    def _set_status(self, new_status: ConnectionStatus) -> None:
        old_status = self._status
        if old_status == new_status:
            return

        self._status = new_status
        self._logger.info(f"Status changed: {old_status.value} -> {new_status.value}")
        self._status_stream.publish(new_status)

    def _fail(self, error: ConnectorError) -> None:
        self.last_error = error
        self._logger.warning(str(error))


async def discover(
    address: Optional[str] = None,
    port: Optional[int] = None,
    timeout: Optional[float] = None,
    config: Optional[Dict[str, Any]] = None,
) -> AsyncIterator[DiscoveredPrinter]:
    """Stream printers on the local subnet without keeping a connector."""
    connector = TcpPrinterConnector(config)
    async for printer in connector.discover(address, port, timeout):
        yield printer


async def discover_printers(
    address: Optional[str] = None,
    port: Optional[int] = None,
    timeout: Optional[float] = None,
    config: Optional[Dict[str, Any]] = None,
) -> List[DiscoveredPrinter]:
    """Collect every printer on the local subnet."""
    return await TcpPrinterConnector(config).discover_printers(address, port, timeout)
