# storeadmin/realtime.py

"""
Realtime change feed.

The hosted backend pushes a notification whenever a row is inserted,
updated or deleted. Here the feed is a channel that anything can publish
into: the gateway after its own writes to `orders`, and the
/webhooks/realtime route for changes made by other clients.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ChangeEvent(BaseModel):
    type: Literal["INSERT", "UPDATE", "DELETE"]
    table: str
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None


ChangeCallback = Callable[[ChangeEvent], None]


class RealtimeChannel:
    """
    Fan-out of change events per table.
    publish() may be called from any thread; callbacks run on the publishing thread.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(table, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscribers.get(table, []))

    def publish(self, event: ChangeEvent) -> int:
        with self._lock:
            callbacks = list(self._subscribers.get(event.table, []))
        logger.debug("%s on %s -> %d subscriber(s)", event.type, event.table, len(callbacks))
        for callback in callbacks:
            callback(event)
        return len(callbacks)
