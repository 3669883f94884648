"""Push channels connecting event sources, the aggregator and consumers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Lock
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observer(Generic[T]):
    """Receiver of push notifications.

    Subclass and override, or build one from callables with ``Observer.of``.
    Defaults ignore values and completion; errors are logged.
    """

    def on_next(self, value: T) -> None:
        pass

    def on_error(self, error: BaseException) -> None:
        logger.error("Unhandled stream error: %s", error)

    def on_completed(self) -> None:
        pass

    @staticmethod
    def of(
        on_next: Callable[[T], None],
        on_error: Callable[[BaseException], None] | None = None,
        on_completed: Callable[[], None] | None = None,
    ) -> Observer[T]:
        return _CallbackObserver(on_next, on_error, on_completed)


class _CallbackObserver(Observer[T]):
    def __init__(self, on_next, on_error, on_completed) -> None:
        self._on_next = on_next
        self._on_error = on_error
        self._on_completed = on_completed

    def on_next(self, value: T) -> None:
        self._on_next(value)

    def on_error(self, error: BaseException) -> None:
        if self._on_error is None:
            super().on_error(error)
        else:
            self._on_error(error)

    def on_completed(self) -> None:
        if self._on_completed is not None:
            self._on_completed()


class Subscription:
    """Handle returned by ``subscribe``. ``unsubscribe()`` is idempotent."""

    def __init__(self, observer: Observer, on_dispose: Callable[[Subscription], None] | None = None) -> None:
        self.observer = observer
        self._on_dispose = on_dispose
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_dispose is not None:
            self._on_dispose(self)


class Channel(Generic[T]):
    """Hot multicast channel with no replay.

    Subscribers only see values emitted after they subscribe. Once the channel
    has errored or completed it drops further emits, and late subscribers are
    terminated immediately with the same outcome.
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._subscriptions: list[Subscription] = []
        self._lock = Lock()
        self._closed = False
        self._error: BaseException | None = None

    def subscribe(self, observer: Observer[T]) -> Subscription:
        subscription = Subscription(observer, self._remove)
        with self._lock:
            closed, error = self._closed, self._error
            if not closed:
                self._subscriptions.append(subscription)
        if closed:
            subscription.unsubscribe()
            if error is not None:
                observer.on_error(error)
            else:
                observer.on_completed()
        return subscription

    def emit(self, value: T) -> None:
        with self._lock:
            if self._closed:
                return
            targets = list(self._subscriptions)
        for subscription in targets:
            if not subscription.closed:
                subscription.observer.on_next(value)

    def error(self, error: BaseException) -> None:
        for observer in self._terminate(error):
            observer.on_error(error)

    def complete(self) -> None:
        for observer in self._terminate(None):
            observer.on_completed()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        return self._closed

    def _terminate(self, error: BaseException | None) -> list[Observer[T]]:
        with self._lock:
            if self._closed:
                return []
            self._closed = True
            self._error = error
            targets, self._subscriptions = self._subscriptions, []
        logger.debug("Channel %s terminated (error=%r)", self.name, error)
        return [s.observer for s in targets if not s.closed]

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                pass
