"""ICMP liveness probing for connected printers."""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from icmplib import async_ping
from icmplib.exceptions import ICMPLibError

from printlink.types.printers import ProbeOutcome


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3.0
DEFAULT_TIMEOUT = 7.0


async def probe_outcomes(
    address: str,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
    privileged: bool = False,
) -> AsyncIterator[ProbeOutcome]:
    """
    Ping address forever, yielding one outcome per echo request.

    Args:
        address: Host to ping
        interval: Seconds between probes
        timeout: Seconds to wait for each reply
        privileged: Use raw sockets (requires root) instead of datagram ICMP

    Yields:
        ProbeOutcome for each probe
    """
    while True:
        try:
            host = await async_ping(
                address,
                count=1,
                timeout=timeout,
                privileged=privileged,
            )
            if host.is_alive:
                outcome = ProbeOutcome(address=address, alive=True, rtt_ms=host.avg_rtt)
            else:
                outcome = ProbeOutcome(address=address, alive=False, error="no reply")
        except (ICMPLibError, OSError) as e:
            outcome = ProbeOutcome(address=address, alive=False, error=str(e) or type(e).__name__)

        yield outcome
        await asyncio.sleep(interval)


class LivenessProber:
    """
    Periodically pings a printer and reports each outcome.

    Outcomes are delivered to a callback until stop() is called; nothing
    is delivered afterwards, even if a probe was already in flight.
    """

    def __init__(
        self,
        address: str,
        on_outcome: Callable[[ProbeOutcome], None],
        interval: float = DEFAULT_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        privileged: bool = False,
    ):
        self.address = address
        self.interval = interval
        self.timeout = timeout
        self.privileged = privileged

        self._on_outcome = on_outcome
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> "LivenessProber":
        """Start probing in a background task."""
        if self._task is not None:
            raise RuntimeError("Prober already started")

        self._task = asyncio.create_task(self._run())
        logger.debug(
            f"Started liveness probe for {self.address} "
            f"(interval {self.interval}s, timeout {self.timeout}s)"
        )
        return self

    def stop(self) -> None:
        """Cancel pending and future probes."""
        if self._stopped:
            return

        self._stopped = True
        if self._task and not self._task.done():
            self._task.cancel()
        logger.debug(f"Stopped liveness probe for {self.address}")

    async def wait_stopped(self) -> None:
        """Wait for the probe task to finish after stop()."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        outcomes = probe_outcomes(self.address, self.interval, self.timeout, self.privileged)
        try:
            async for outcome in outcomes:
                if self._stopped:
                    break

                if outcome.alive:
                    logger.debug(f"Probe reply from {self.address} in {outcome.rtt_ms} ms")
                else:
                    logger.warning(f"Probe to {self.address} failed: {outcome.error}")

                try:
                    self._on_outcome(outcome)
                except Exception as e:
                    logger.error(f"Error handling probe outcome: {e}", exc_info=True)
        finally:
            await outcomes.aclose()
