"""Concurrent TCP scan of a /24 subnet."""

import asyncio
import logging
import re
from typing import AsyncIterator, Optional

from printlink.types.printers import DEFAULT_DISCOVERY_TIMEOUT, DEFAULT_PORT, Endpoint


logger = logging.getLogger(__name__)

HOST_OCTETS = range(1, 255)

_PREFIX_PATTERN = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")
_DONE = object()


def validate_prefix(prefix: str) -> str:
    """
    Check that prefix is three dotted octets, e.g. '192.168.1'.

    Raises:
        ValueError: If prefix is malformed
    """
    match = _PREFIX_PATTERN.match(prefix.strip())
    if not match or any(int(octet) > 255 for octet in match.groups()):
        raise ValueError(f"Invalid /24 subnet prefix: {prefix!r}")
    return prefix.strip()


async def probe(host: str, port: int, timeout: float) -> bool:
    """Return True if host accepts a TCP connection on port within timeout."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (asyncio.TimeoutError, OSError) as e:
        logger.debug(f"No printer at {host}:{port}: {e!r}")
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


class SubnetScanner:
    """
    Scans every host of a /24 subnet for an open TCP port.

    Each host gets its own task; a semaphore caps how many connect
    attempts are in flight. Results stream out in completion order.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
        max_concurrency: int = len(HOST_OCTETS),
    ):
        """
        Initialize subnet scanner.

        Args:
            timeout: Default per-host connect timeout in seconds
            max_concurrency: Maximum simultaneous connect attempts
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.timeout = timeout
        self.max_concurrency = max_concurrency

    async def scan(
        self,
        prefix: str,
        port: int = DEFAULT_PORT,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[Endpoint]:
        """
        Probe prefix.1 through prefix.254 and yield responding endpoints.

        Args:
            prefix: Subnet prefix such as '192.168.1'
            port: TCP port to probe
            timeout: Per-host timeout in seconds (defaults to the scanner's)

        Yields:
            Endpoint for each host that accepted the connection
        """
        prefix = validate_prefix(prefix)
        timeout = self.timeout if timeout is None else timeout

        queue: asyncio.Queue = asyncio.Queue()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def attempt(host: str) -> None:
            async with semaphore:
                if await probe(host, port, timeout):
                    queue.put_nowait(Endpoint(address=host, port=port))

        async def supervise() -> None:
            try:
                results = await asyncio.gather(
                    *(attempt(f"{prefix}.{octet}") for octet in HOST_OCTETS),
                    return_exceptions=True,
                )
                for result in results:
                    if isinstance(result, Exception):
                        logger.error(f"Scan attempt failed unexpectedly: {result}", exc_info=result)
            finally:
                queue.put_nowait(_DONE)

        logger.info(f"Scanning {prefix}.0/24 on port {port} (timeout {timeout}s)")
        supervisor = asyncio.create_task(supervise())
        found = 0

        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                found += 1
                yield item
        finally:
            if not supervisor.done():
                supervisor.cancel()
                try:
                    await supervisor
                except asyncio.CancelledError:
                    pass

        logger.info(f"Scan of {prefix}.0/24 finished: {found} host(s) on port {port}")
