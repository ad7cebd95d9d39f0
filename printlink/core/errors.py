"""Connector error taxonomy.

Errors raised by sessions are converted to boolean results by the
connector; asynchronous failures are only recorded and observed through
the status stream.
"""


class ConnectorError(Exception):
    """Base class for printer connection errors."""


class ConnectTimeout(ConnectorError):
    """The printer did not accept the connection within the timeout."""


class ConnectRefused(ConnectorError):
    """The printer actively refused the connection."""


class NetworkUnreachable(ConnectorError):
    """The platform reported the printer host or network as unreachable."""


class AlreadyConnected(ConnectorError):
    """A connection is already active or being established."""


class NotConnected(ConnectorError):
    """An operation needed an active connection and there was none."""


class WriteFailure(ConnectorError):
    """Writing to the printer socket failed."""


class SocketClosedByPeer(ConnectorError):
    """The printer closed the connection."""


class ProbeFailure(ConnectorError):
    """A liveness probe got no reply."""
