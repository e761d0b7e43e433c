"""
Notification delivery. The core only needs dispatch(event) -> bool; channel-specific
delivery (push, email, ...) plugs in behind the same contract.

If a dispatcher returns False or raises, the aggregator logs it and moves on; nothing is
retried within the same cycle.
"""
import logging
import threading
from collections import deque
from collections.abc import Iterable
from typing import Protocol

from parkwatch.services.alerts import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Interface for anything that can deliver a NotificationEvent."""

    def dispatch(self, event: NotificationEvent) -> bool:
        """Accept the event for delivery. True if accepted, False if it could not be delivered."""
        ...


class LogDispatcher:
    """Writes each notification to the log. Always accepts."""

    def __init__(self, level: int = logging.INFO):
        self._level = level

    def dispatch(self, event: NotificationEvent) -> bool:
        logger.log(self._level, "%s: %s", event.title, event.message)
        return True


class NotificationInbox:
    """Bounded in-memory list of recent notifications, newest last. Read by GET /notifications."""

    def __init__(self, maxlen: int = 100):
        self._events: deque[NotificationEvent] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def dispatch(self, event: NotificationEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def recent(self, limit: int = 50) -> list[NotificationEvent]:
        """Newest first."""
        with self._lock:
            events = list(self._events)
        events.reverse()
        return events[:limit]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class FanOutDispatcher:
    """Delivers to every dispatcher in order. Succeeds only if all of them accepted the event."""

    def __init__(self, dispatchers: Iterable[NotificationDispatcher]):
        self._dispatchers = list(dispatchers)

    def dispatch(self, event: NotificationEvent) -> bool:
        ok = True
        for d in self._dispatchers:
            try:
                accepted = d.dispatch(event)
            except Exception as e:
                logger.warning("Dispatcher %s failed for rule %s: %s", type(d).__name__, event.rule_id, e, exc_info=True)
                accepted = False
            ok = ok and bool(accepted)
        return ok
