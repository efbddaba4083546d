"""In-process fanout of log events to live subscribers.

The HTTP layer owns one LogBroadcaster and passes it wherever observers need
to be notified. Each subscriber gets its own bounded queue; a slow consumer
loses its oldest pending events instead of stalling publishers.
"""

import itertools
import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from log_ingest.models import format_timestamp

logger = logging.getLogger(__name__)

NEW_LOG = "new_log"
LOG_STATS = "log_stats"
SYSTEM_NOTIFICATION = "system_notification"
CONNECTED = "connected"


@dataclass(frozen=True)
class Event:
    name: str
    data: dict


class Subscription:
    def __init__(self, subscriber_id: int, queue_size: int):
        self.id = subscriber_id
        self._queue = queue.Queue(maxsize=queue_size)

    def get(self, timeout: float | None = None) -> Event | None:
        """Next pending event, or None if nothing arrives within timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def _offer(self, event: Event) -> bool:
        """Enqueue without blocking. Returns False if an older event was dropped."""
        dropped = False
        while True:
            try:
                self._queue.put_nowait(event)
                return not dropped
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    dropped = True
                except queue.Empty:
                    pass


class LogBroadcaster:
    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self) -> Subscription:
        with self._lock:
            sub = Subscription(next(self._ids), self._queue_size)
            self._subscribers[sub.id] = sub
        logger.info("Subscriber %d connected", sub.id)
        sub._offer(Event(CONNECTED, {
            "message": "Connected to log ingestion system",
            "timestamp": _now(),
        }))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        if removed is not None:
            logger.info("Subscriber %d disconnected", sub.id)

    @property
    def connected_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, name: str, data: dict) -> int:
        """Deliver an event to every subscriber. Returns the number reached."""
        event = Event(name, data)
        with self._lock:
            subscribers = list(self._subscribers.values())
        for sub in subscribers:
            if not sub._offer(event):
                logger.debug("Subscriber %d queue full, dropped oldest event", sub.id)
        return len(subscribers)

    def broadcast_new_log(self, record: dict) -> int:
        return self.publish(NEW_LOG, record)

    def broadcast_log_stats(self, stats: dict) -> int:
        return self.publish(LOG_STATS, stats)

    def broadcast_system_notification(self, message: str, kind: str = "info") -> int:
        return self.publish(SYSTEM_NOTIFICATION, {
            "message": message,
            "type": kind,
            "timestamp": _now(),
        })


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))
