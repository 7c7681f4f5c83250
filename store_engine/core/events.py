#store_engine\core\events.py

"""Event emitters and the per-operation event bus."""

import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Callable, Dict, List, Optional, Set

from store_engine.core.cache import TTLCache
from store_engine.core.models import OperationEvent, OperationEventType, OperationStatus

logger = logging.getLogger(__name__)

OperationSubscriber = Callable[[OperationEvent], None]
Unsubscribe = Callable[[], None]


class EventEmitter(ABC):
    """Abstract event emitter."""

    @abstractmethod
    def emit(self, event: OperationEvent) -> None:
        """Emit one event."""
        pass


class OperationEventBus(EventEmitter):
    """
    In-process publish/subscribe keyed by operation id.

    Keeps only the latest event per operation, in a bounded LRU so that a
    long-lived process does not grow one entry per operation forever.
    """

    def __init__(self, max_events: int = 1000, ttl_seconds: Optional[float] = None):
        self._subscribers: Dict[str, Set[OperationSubscriber]] = {}
        self._latest: TTLCache[OperationEvent] = TTLCache(max_events, ttl_seconds)
        self._lock = RLock()

    def emit(self, event: OperationEvent) -> None:
        with self._lock:
            self._latest.set(event.operation_id, event)
            subscribers = list(self._subscribers.get(event.operation_id, ()))

            for subscriber in subscribers:
                self._deliver(subscriber, event)

    def latest(self, operation_id: str) -> Optional[OperationEvent]:
        return self._latest.get(operation_id)

    def subscribe(self, operation_id: str, callback: OperationSubscriber) -> Unsubscribe:
        """
        Register a callback for one operation.

        The latest known event (if any) is replayed immediately, then every
        later event is delivered in order. Returns the unsubscribe function.
        """
        with self._lock:
            self._subscribers.setdefault(operation_id, set()).add(callback)

            latest = self._latest.get(operation_id)
            if latest is not None:
                self._deliver(callback, latest)

        def unsubscribe() -> None:
            with self._lock:
                subscribers = self._subscribers.get(operation_id)
                if not subscribers:
                    return

                subscribers.discard(callback)
                if not subscribers:
                    del self._subscribers[operation_id]

        return unsubscribe

    def subscriber_count(self, operation_id: str) -> int:
        return len(self._subscribers.get(operation_id, ()))

    def _deliver(self, subscriber: OperationSubscriber, event: OperationEvent) -> None:
        try:
            subscriber(event)
        except Exception as e:
            logger.error(
                f"[events] subscriber failed for {event.operation_id}: {e}",
                exc_info=True,
            )


class LoggingEventEmitter(EventEmitter):
    """
    Durable action log of operation transitions.

    Pull progress is left out; it fires once per engine stream entry.
    """

    def __init__(self, action_logger: Optional[logging.Logger] = None):
        self._logger = action_logger or logging.getLogger("store_engine.actions")

    def emit(self, event: OperationEvent) -> None:
        if event.event_type == OperationEventType.PULL_PROGRESS:
            return

        level = logging.ERROR if event.status == OperationStatus.ERROR else logging.INFO
        self._logger.log(
            level,
            f"[operation {event.operation_id}] {event.event_type.value} "
            f"app={event.app_id} action={event.action.value} "
            f"step={event.step} progress={event.progress_percent}%"
            + (f" | {event.message}" if event.message else ""),
        )


class RecordingEventEmitter(EventEmitter):
    """Keeps every emitted event in memory (tests, debugging)."""

    def __init__(self):
        self.events: List[OperationEvent] = []

    def emit(self, event: OperationEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: OperationEventType) -> List[OperationEvent]:
        return [e for e in self.events if e.event_type == event_type]


class MultiEventEmitter(EventEmitter):
    """Fan-out to multiple emitters."""

    def __init__(self, emitters):
        self._emitters = list(emitters)

    def emit(self, event: OperationEvent) -> None:
        """Emit to all emitters."""
        for emitter in self._emitters:
            emitter.emit(event)

