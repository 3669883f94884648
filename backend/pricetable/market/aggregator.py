"""Price aggregator: folds update and reset events into table snapshots."""

from __future__ import annotations

import logging
from collections import deque
from threading import Lock
from types import MappingProxyType

from .channel import Channel, Observer, Subscription
from .models import EMPTY_TABLE, RESET, PriceEvent, PriceTable, PriceUpdate, Reset

logger = logging.getLogger(__name__)

_NEXT = "next"
_ERROR = "error"
_COMPLETED = "completed"


def fold(table: PriceTable, event: PriceEvent) -> PriceTable:
    """Return the table that follows ``table`` once ``event`` is applied.

    An update sets (or overwrites) one symbol and leaves the rest untouched.
    A reset discards everything. The input table is never modified.
    """
    if isinstance(event, Reset):
        return EMPTY_TABLE
    if isinstance(event, PriceUpdate):
        next_table = dict(table)
        next_table[event.symbol] = event.price
        return MappingProxyType(next_table)
    raise TypeError(f"Unsupported price event: {event!r}")


class PriceAggregator:
    """Shared, stateful view of the latest price per symbol.

    The merged stream of updates and resets is folded into a single current
    table. Subscribers receive that table as soon as they subscribe (``{}``
    for the first one) and then one snapshot per upstream event, in arrival
    order. History is never replayed.

    Upstream channels are subscribed lazily on the first subscriber and
    released when the last one leaves; the next subscriber starts again from
    an empty table. An upstream error or completion is forwarded to every
    subscriber and ends the current connection.

    Folding is done under a lock and delivery goes through a single drain
    queue, so concurrent or reentrant emitters cannot lose or reorder updates.
    """

    def __init__(self, updates: Channel[PriceUpdate], resets: Channel[Reset]) -> None:
        self._updates = updates
        self._resets = resets
        self._lock = Lock()
        self._table: PriceTable = EMPTY_TABLE
        self._subscriptions: list[Subscription] = []
        self._upstream: list[Subscription] = []
        self._connected = False
        self._generation = 0  # Bumped on every (re)connect; stale upstream events are dropped
        self._queue: deque[tuple[tuple[Subscription, ...], str, object]] = deque()
        self._draining = False

    # --- Public API ---

    def subscribe(self, observer: Observer[PriceTable]) -> Subscription:
        """Subscribe to table snapshots, starting with the current table."""
        subscription = Subscription(observer, self._remove)
        with self._lock:
            self._subscriptions.append(subscription)
            connect = not self._connected
            if connect:
                self._connected = True
                self._generation += 1
                self._table = EMPTY_TABLE
            generation = self._generation
            self._queue.append(((subscription,), _NEXT, self._table))
        self._drain()
        if connect:
            self._connect(generation)
        return subscription

    @property
    def current(self) -> PriceTable:
        """The current table. Empty while nobody is subscribed."""
        return self._table

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def connected(self) -> bool:
        return self._connected

    # --- Upstream ---

    def _connect(self, generation: int) -> None:
        upstream = [
            self._updates.subscribe(_UpstreamObserver(self, generation)),
            self._resets.subscribe(_UpstreamObserver(self, generation, reset=True)),
        ]
        with self._lock:
            if self._connected and self._generation == generation:
                self._upstream = upstream
                logger.info("Price aggregator connected to %s and %s", self._updates.name, self._resets.name)
                return
        # Everyone left (or upstream terminated) while we were connecting
        for subscription in upstream:
            subscription.unsubscribe()

    def _on_event(self, generation: int, event: PriceEvent) -> None:
        with self._lock:
            if not self._connected or generation != self._generation:
                return
            self._table = fold(self._table, event)
            self._queue.append((tuple(self._subscriptions), _NEXT, self._table))
        logger.debug("Folded %r (%d symbols)", event, len(self._table))
        self._drain()

    def _on_terminal(self, generation: int, error: BaseException | None) -> None:
        with self._lock:
            if not self._connected or generation != self._generation:
                return
            targets = tuple(self._subscriptions)
            self._subscriptions = []
            upstream, self._upstream = self._upstream, []
            self._connected = False
            self._table = EMPTY_TABLE
            if error is None:
                self._queue.append((targets, _COMPLETED, None))
            else:
                self._queue.append((targets, _ERROR, error))
        if error is None:
            logger.info("Price stream completed upstream; closing %d subscribers", len(targets))
        else:
            logger.warning("Price stream failed upstream: %s", error)
        for subscription in upstream:
            subscription.unsubscribe()
        self._drain()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                return
            if self._subscriptions or not self._connected:
                return
            self._connected = False
            self._table = EMPTY_TABLE
            upstream, self._upstream = self._upstream, []
        logger.info("Last subscriber left; releasing upstream channels")
        for upstream_subscription in upstream:
            upstream_subscription.unsubscribe()

    # --- Delivery ---

    def _drain(self) -> None:
        """Deliver queued notifications in order. Only one caller drains at a time."""
        with self._lock:
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        self._draining = False
                        return
                    targets, kind, payload = self._queue.popleft()
                for subscription in targets:
                    if not subscription.closed:
                        self._deliver(subscription, kind, payload)
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    @staticmethod
    def _deliver(subscription: Subscription, kind: str, payload: object) -> None:
        observer = subscription.observer
        try:
            if kind == _NEXT:
                observer.on_next(payload)
            elif kind == _ERROR:
                observer.on_error(payload)
            else:
                observer.on_completed()
        except Exception:
            logger.exception("Snapshot subscriber raised during %s", kind)
        if kind != _NEXT:
            subscription.unsubscribe()


class _UpstreamObserver(Observer):
    """Routes one upstream channel into the aggregator for a single connection."""

    def __init__(self, aggregator: PriceAggregator, generation: int, reset: bool = False) -> None:
        self._aggregator = aggregator
        self._generation = generation
        self._reset = reset

    def on_next(self, value) -> None:
        # Any occurrence on the reset channel is a reset, whatever it carries
        self._aggregator._on_event(self._generation, RESET if self._reset else value)

    def on_error(self, error: BaseException) -> None:
        self._aggregator._on_terminal(self._generation, error)

    def on_completed(self) -> None:
        self._aggregator._on_terminal(self._generation, None)
