"""Change Notifier - Imperative Shell.

Fans newly stored alert events out to every subscribed client session.

Each subscription is an asyncio queue owned by the session's event loop.
Publishers may run on any thread (ingestion in a worker thread, the
Firestore watch callback thread) and hand events over with
call_soon_threadsafe, so a session waiting for events holds no thread.

Publishing never blocks: a subscriber with a full buffer is dropped and
must reconnect (and catch up through the recent-events query). Nothing is
persisted, so a session only sees events published while it is subscribed.
"""

import asyncio
import logging
import threading
from itertools import count

from src.core.earthquake import AlertEvent


logger = logging.getLogger(__name__)


# Default per-subscriber buffer (events)
DEFAULT_BUFFER_SIZE = 100


class Subscription:
    """One client session's view of the realtime stream.

    offer() and close() are thread-safe. get() and get_nowait() must be
    called on the subscription's event loop.
    """

    def __init__(
        self,
        subscription_id: int,
        buffer_size: int,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.subscription_id = subscription_id
        self.buffer_size = buffer_size
        self._loop = loop
        # None marks the end of the stream
        self._queue: asyncio.Queue[AlertEvent | None] = asyncio.Queue()
        self._lock = threading.Lock()
        self._pending = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: AlertEvent) -> bool:
        """Queue an event without blocking.

        Returns:
            False if the subscription is closed or its buffer is full
        """
        with self._lock:
            if self._closed or self._pending >= self.buffer_size:
                return False
            if self._loop.is_closed():
                self._closed = True
                return False
            self._pending += 1
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        return True

    def _taken(self, event: AlertEvent | None) -> AlertEvent | None:
        if event is None:
            # Keep the end marker so later reads also see it
            self._queue.put_nowait(None)
            return None
        with self._lock:
            self._pending -= 1
        return event

    async def get(self) -> AlertEvent | None:
        """Wait for the next event.

        Events buffered before close() are still returned; after that,
        returns None.
        """
        return self._taken(await self._queue.get())

    def get_nowait(self) -> AlertEvent | None:
        """Next already-delivered event, or None if there is none."""
        try:
            event = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        return self._taken(event)

    def pending(self) -> int:
        return self._pending

    def close(self) -> None:
        """End the stream; a waiting get() wakes up with None."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._queue.put_nowait, None)


class ChangeNotifier:
    """In-process fan-out of inserted events to live subscriptions.

    Thread-safe: publish() may be called from ingestion threads while
    sessions subscribe and unsubscribe from request handlers.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        """Initialize notifier.

        Args:
            buffer_size: Max undelivered events per subscriber
        """
        self.buffer_size = buffer_size
        self._subscriptions: dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._ids = count(1)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, loop: asyncio.AbstractEventLoop | None = None) -> Subscription:
        """Register a new session. It only receives later publishes.

        Args:
            loop: Loop the session reads on (defaults to the running loop)
        """
        loop = loop or asyncio.get_running_loop()

        with self._lock:
            subscription = Subscription(next(self._ids), self.buffer_size, loop)
            self._subscriptions[subscription.subscription_id] = subscription
            total = len(self._subscriptions)

        logger.info(
            "Realtime subscriber %d connected. Total subscribers: %d",
            subscription.subscription_id,
            total,
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove and close a session. Safe to call twice."""
        subscription.close()
        with self._lock:
            removed = self._subscriptions.pop(subscription.subscription_id, None)
            total = len(self._subscriptions)

        if removed is not None:
            logger.info(
                "Realtime subscriber %d disconnected. Total subscribers: %d",
                subscription.subscription_id,
                total,
            )

    def publish(self, event: AlertEvent) -> int:
        """Deliver an event to every live subscription.

        Args:
            event: Newly stored event

        Returns:
            Number of subscriptions the event was queued for
        """
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        delivered = 0
        slow = []

        for subscription in subscriptions:
            if subscription.offer(event):
                delivered += 1
            else:
                slow.append(subscription)

        for subscription in slow:
            logger.warning(
                "Dropping slow realtime subscriber %d (%d events pending)",
                subscription.subscription_id,
                subscription.pending(),
            )
            self.unsubscribe(subscription)

        logger.debug(
            "Published %s to %d subscribers",
            event.external_id,
            delivered,
        )
        return delivered

    def close(self) -> None:
        """Disconnect every subscriber."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        for subscription in subscriptions:
            self.unsubscribe(subscription)
