"""Multi-subscriber status broadcast."""

import asyncio
import logging
from typing import Callable, List, Optional

from printlink.types.printers import ConnectionStatus


logger = logging.getLogger(__name__)

_CLOSED = object()


class StatusSubscription:
    """
    A single subscriber's view of the status stream.

    Every published status is queued, so a slow consumer still sees
    every transition in order.
    """

    def __init__(self, stream: "StatusStream"):
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._detached = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item) -> None:
        if not self._detached:
            self._queue.put_nowait(item)

    def pending(self) -> List[ConnectionStatus]:
        """Drain and return the statuses queued so far without waiting."""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self._closed = True
                break
            items.append(item)
        return items

    async def get(self, timeout: Optional[float] = None) -> ConnectionStatus:
        """
        Wait for the next status.

        Raises:
            StopAsyncIteration: If the subscription was closed
            asyncio.TimeoutError: If timeout elapses first
        """
        if self._closed:
            raise StopAsyncIteration
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        """Stop receiving statuses."""
        if self._detached:
            return
        self._detached = True
        self._stream._detach(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ConnectionStatus:
        return await self.get()

    async def __aenter__(self) -> "StatusSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class StatusStream:
    """Broadcasts connection status changes to subscriptions and listeners."""

    def __init__(self):
        self._subscriptions: List[StatusSubscription] = []
        self._listeners: List[Callable[[ConnectionStatus], None]] = []
        self._last: Optional[ConnectionStatus] = None

    @property
    def last(self) -> Optional[ConnectionStatus]:
        """Most recently published status, if any."""
        return self._last

    def subscribe(self) -> StatusSubscription:
        subscription = StatusSubscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, callback: Callable[[ConnectionStatus], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[ConnectionStatus], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def publish(self, status: ConnectionStatus) -> None:
        """Deliver a status to every subscriber, synchronously and in order."""
        self._last = status
        for subscription in list(self._subscriptions):
            subscription._put(status)

        for callback in list(self._listeners):
            try:
                callback(status)
            except Exception as e:
                logger.error(f"Error in status listener: {e}", exc_info=True)

    def close(self) -> None:
        """End every open subscription."""
        for subscription in list(self._subscriptions):
            subscription.close()
        self._listeners.clear()

    def _detach(self, subscription: StatusSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)
