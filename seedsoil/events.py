"""
Change notifications.

Every mutation publishes an Event. Subscribers (a CLI printer, a UI, tests)
decide how to present it. A failing subscriber is logged and skipped so
that presentation problems never interrupt the engine.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


# Event kinds
CAPTURED = "captured"
DISTILLED = "distilled"
DISTILL_FAILED = "distill_failed"
SYNTHESIZED = "synthesized"
SYNTHESIS_FAILED = "synthesis_failed"
REVIEWED = "reviewed"
BURIED = "buried"
RESURRECTED = "resurrected"
DECAYED = "decayed"
CLEARED = "cleared"
PULLED = "pulled"
SYNC_FAILED = "sync_failed"
NOTICE = "notice"


@dataclass
class Event:
    """
    A single change notification.

    ``level`` is "info" for ordinary changes and "error" for failures that
    should be shown briefly to the user.
    """
    kind: str
    item_id: Optional[str] = None
    message: str = ""
    level: str = "info"
    data: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[Event], None]


class EventBus:
    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    def publish(self, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.warning("Event subscriber failed on %s: %s", event.kind, e)
