#tests\test_events.py

"""Test event bus and emitters."""

import logging

from store_engine.core.cache import TTLCache
from store_engine.core.events import (
    LoggingEventEmitter,
    MultiEventEmitter,
    OperationEventBus,
    RecordingEventEmitter,
)
from store_engine.core.models import (
    Operation,
    OperationAction,
    OperationEvent,
    OperationEventType,
)


def make_event(operation: Operation, event_type=OperationEventType.STEP, **fields) -> OperationEvent:
    return OperationEvent.from_operation(operation, event_type, **fields)


def running_operation(app_id="nginx") -> Operation:
    operation = Operation.new(app_id, OperationAction.INSTALL)
    operation.start()
    return operation


class TestOperationEventBus:

    def test_subscribe_replays_latest_event(self):
        """Late subscribers get the latest event right away."""
        bus = OperationEventBus()
        operation = running_operation()
        bus.emit(make_event(operation, OperationEventType.STARTED))
        operation.advance("render", 8)
        bus.emit(make_event(operation))

        received = []
        bus.subscribe(operation.operation_id, received.append)

        assert len(received) == 1
        assert received[0].step == "render"

    def test_subscriber_receives_later_events_in_order(self):
        bus = OperationEventBus()
        operation = running_operation()

        received = []
        bus.subscribe(operation.operation_id, received.append)

        for step, percent in [("render", 8), ("pull-images", 15), ("compose-up", 85)]:
            operation.advance(step, percent)
            bus.emit(make_event(operation))

        assert [e.step for e in received] == ["render", "pull-images", "compose-up"]

    def test_events_are_scoped_by_operation(self):
        bus = OperationEventBus()
        first = running_operation("a")
        second = running_operation("b")

        received = []
        bus.subscribe(first.operation_id, received.append)
        bus.emit(make_event(second))

        assert received == []

    def test_unsubscribe_drops_empty_set_but_keeps_latest(self):
        bus = OperationEventBus()
        operation = running_operation()

        unsubscribe = bus.subscribe(operation.operation_id, lambda e: None)
        assert bus.subscriber_count(operation.operation_id) == 1

        unsubscribe()
        unsubscribe()

        bus.emit(make_event(operation))
        assert bus.subscriber_count(operation.operation_id) == 0
        assert bus.latest(operation.operation_id) is not None

    def test_failing_subscriber_does_not_block_others(self):
        bus = OperationEventBus()
        operation = running_operation()

        def broken(event):
            raise RuntimeError("boom")

        received = []
        bus.subscribe(operation.operation_id, broken)
        bus.subscribe(operation.operation_id, received.append)

        bus.emit(make_event(operation))

        assert len(received) == 1

    def test_latest_event_cache_is_bounded(self):
        bus = OperationEventBus(max_events=2)
        operations = [running_operation(f"app-{i}") for i in range(3)]

        for operation in operations:
            bus.emit(make_event(operation))

        assert bus.latest(operations[0].operation_id) is None
        assert bus.latest(operations[1].operation_id) is not None
        assert bus.latest(operations[2].operation_id) is not None


class TestLoggingEventEmitter:

    def test_pull_progress_not_logged(self, caplog):
        emitter = LoggingEventEmitter()
        operation = running_operation()

        with caplog.at_level(logging.INFO, logger="store_engine.actions"):
            emitter.emit(make_event(operation, OperationEventType.PULL_PROGRESS, image="nginx"))
            emitter.emit(make_event(operation, OperationEventType.STARTED))

        messages = [r.getMessage() for r in caplog.records if r.name == "store_engine.actions"]
        assert len(messages) == 1
        assert "started" in messages[0]

    def test_failed_event_logged_as_error(self, caplog):
        emitter = LoggingEventEmitter()
        operation = running_operation()
        operation.fail("unauthorized")

        with caplog.at_level(logging.INFO, logger="store_engine.actions"):
            emitter.emit(make_event(operation, OperationEventType.FAILED, message="unauthorized"))

        record = [r for r in caplog.records if r.name == "store_engine.actions"][0]
        assert record.levelno == logging.ERROR
        assert "unauthorized" in record.getMessage()


class TestMultiEventEmitter:

    def test_fans_out_to_all(self):
        first, second = RecordingEventEmitter(), RecordingEventEmitter()
        event = make_event(running_operation())

        MultiEventEmitter([first, second]).emit(event)

        assert first.events == [event]
        assert second.events == [event]


class TestTTLCache:

    class Clock:
        def __init__(self):
            self.now = 0.0

        def __call__(self):
            return self.now

    def test_entries_expire(self):
        clock = self.Clock()
        cache = TTLCache(10, ttl_seconds=30, clock=clock)
        cache.set("nginx", "sha256:a")

        clock.now = 29
        assert cache.get("nginx") == "sha256:a"

        clock.now = 30
        assert cache.get("nginx") is None
        assert "nginx" not in cache

    def test_per_entry_ttl_overrides_default(self):
        clock = self.Clock()
        cache = TTLCache(10, ttl_seconds=30, clock=clock)
        cache.set("nginx", "x", ttl_seconds=300)

        clock.now = 100
        assert cache.get("nginx") == "x"

    def test_least_recently_used_evicted(self):
        cache = TTLCache(2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert len(cache) == 2
