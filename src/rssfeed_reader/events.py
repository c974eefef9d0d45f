"""Replay-latest publish/subscribe streams for repository snapshots."""

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class SnapshotStream(Generic[T]):
    """Holds the latest snapshot and pushes every new one to subscribers.

    A new subscriber is called immediately with the current snapshot, then
    once per publish. Delivery is synchronous, on the publishing thread.
    """

    def __init__(self, initial: T, name: str = "stream"):
        self.name = name
        self._value = initial
        self._subscribers: list[Subscriber] = []
        self._lock = threading.RLock()

    @property
    def value(self) -> T:
        """The latest published snapshot."""
        return self._value

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback and replay the latest snapshot to it.

        Returns:
            A function that removes the subscription when called.
        """
        with self._lock:
            self._subscribers.append(callback)
            current = self._value
        self._deliver(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, value: T) -> None:
        """Replace the latest snapshot and notify all current subscribers."""
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        for callback in subscribers:
            self._deliver(callback, value)

    def _deliver(self, callback: Subscriber, value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("Subscriber of '%s' failed", self.name)
