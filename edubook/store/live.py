"""
Live snapshot delivery.

A ``Subscription`` is a cancellable, ordered stream of snapshots. Writers call
``ListenerHub.notify`` after committing; every subscription on that channel
recomputes its snapshot and queues it for the consumer. The consumer owns the
lifecycle and must call ``unsubscribe`` (or use the subscription as a context
manager) when it is done.
"""

import logging
import queue
from threading import Lock
from typing import Any, Callable, Iterable, Iterator

logger = logging.getLogger(__name__)

_CLOSED = object()


class SubscriptionClosed(Exception):
    """Raised when reading from a subscription that has been cancelled."""


class Subscription:
    def __init__(
        self,
        hub: "ListenerHub",
        channel: str,
        snapshot_fn: Callable[[Any], Any],
        match_fn: Callable[[dict], bool] | None = None,
    ) -> None:
        self.channel = channel
        self._hub = hub
        self._snapshot_fn = snapshot_fn
        self._match_fn = match_fn
        self._queue: queue.Queue = queue.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def wants(self, changed: Iterable[dict] | None) -> bool:
        """Whether a write touching ``changed`` documents can alter this snapshot."""
        if changed is None or self._match_fn is None:
            return True
        return any(self._match_fn(document) for document in changed)

    def refresh(self, source: Any) -> None:
        if self._closed:
            return
        self._queue.put(self._snapshot_fn(source))

    def next_snapshot(self, timeout: float | None = None) -> Any:
        """Block until the next snapshot arrives.

        Raises ``TimeoutError`` when ``timeout`` elapses first and
        ``SubscriptionClosed`` once the subscription has been cancelled.
        """
        if self._closed and self._queue.empty():
            raise SubscriptionClosed(self.channel)
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty as exc:
            raise TimeoutError(f'No snapshot on {self.channel} within {timeout} seconds.') from exc
        if item is _CLOSED:
            raise SubscriptionClosed(self.channel)
        return item

    def pending(self) -> int:
        return self._queue.qsize()

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub.unsubscribe(self)
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.next_snapshot()
            except SubscriptionClosed:
                return

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class ListenerHub:
    """Registry of live subscriptions keyed by channel name."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        channel: str,
        snapshot_fn: Callable[[Any], Any],
        source: Any,
        match_fn: Callable[[dict], bool] | None = None,
    ) -> Subscription:
        subscription = Subscription(self, channel, snapshot_fn, match_fn)
        subscription.refresh(source)
        with self._lock:
            self._subscriptions.setdefault(channel, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get(subscription.channel, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscriptions.pop(subscription.channel, None)

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(channel, []))

    def notify(self, channel: str, source: Any, changed: Iterable[dict] | None = None) -> None:
        """Refresh subscriptions on ``channel``.

        ``changed`` holds the written document before and after the write; only
        subscriptions matching one of them are refreshed. ``None`` refreshes all.
        """
        changed = None if changed is None else [document for document in changed if document is not None]
        with self._lock:
            subscribers = list(self._subscriptions.get(channel, []))

        for subscription in subscribers:
            if not subscription.wants(changed):
                continue
            try:
                subscription.refresh(source)
            except Exception:
                logger.exception('Failed to refresh live subscription on %s; cancelling it.', channel)
                subscription.unsubscribe()


listener_hub = ListenerHub()
