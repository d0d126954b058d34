"""Change notification for ledger snapshots.

Observers register a callback and receive the current snapshot straight
away, then every snapshot the store commits afterwards. Delivery to a
subscriber is monotonic: snapshots carry a ``version`` and anything not
newer than what the subscriber already saw is dropped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .core.models import LedgerSnapshot

log = logging.getLogger(__name__)

Callback = Callable[[LedgerSnapshot], None]


class Subscription:
    """Handle returned by :meth:`Publisher.subscribe`.

    Calling the handle (or :meth:`cancel`) stops delivery for good.
    """

    def __init__(self, publisher: Publisher, callback: Callback) -> None:
        self._publisher = publisher
        self.callback = callback
        self.last_version = -1
        self.active = True
        self._lock = threading.RLock()

    def deliver(self, snapshot: LedgerSnapshot) -> bool:
        """Hand ``snapshot`` to the callback unless it is stale."""
        with self._lock:
            if not self.active or snapshot.version <= self.last_version:
                return False
            self.last_version = snapshot.version
            self.callback(snapshot)
            return True

    def cancel(self) -> None:
        with self._lock:
            self.active = False
        self._publisher._remove(self)

    __call__ = cancel


class Publisher:
    """Fan-out of snapshots to any number of independent subscribers."""

    def __init__(self, source: Callable[[], LedgerSnapshot]) -> None:
        self._source = source
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callback) -> Subscription:
        sub = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(sub)
        self._deliver(sub, self._source())
        return sub

    def publish(self, snapshot: LedgerSnapshot) -> None:
        with self._lock:
            targets = list(self._subscribers)
        for sub in targets:
            self._deliver(sub, snapshot)

    def clear(self) -> None:
        with self._lock:
            targets, self._subscribers = self._subscribers, []
        for sub in targets:
            sub.active = False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def _deliver(self, sub: Subscription, snapshot: LedgerSnapshot) -> None:
        try:
            sub.deliver(snapshot)
        except Exception:
            log.exception("Subscriber %r failed on ledger version %d", sub.callback, snapshot.version)
