#tests\test_slots.py

"""Test slot manager and operation runner concurrency policy."""

import threading

import pytest

from store_engine.orchestrator.runner import OperationRunner
from store_engine.orchestrator.slots import Slot, SlotManager


class TestSlot:
    """Test individual slot."""

    def test_slot_initialization(self):
        """Test slot starts free."""
        slot = Slot(slot_id=0)
        assert slot.is_free()
        assert slot.operation_id is None

    def test_bind_operation(self):
        slot = Slot(slot_id=0)

        slot.bind("op-1", "nginx")

        assert not slot.is_free()
        assert slot.operation_id == "op-1"
        assert slot.app_id == "nginx"

    def test_bind_occupied_slot_fails(self):
        slot = Slot(slot_id=0)
        slot.bind("op-1", "nginx")

        with pytest.raises(ValueError):
            slot.bind("op-2", "nginx")

    def test_release_slot(self):
        slot = Slot(slot_id=0)
        slot.bind("op-1", "nginx")

        slot.release()

        assert slot.is_free()
        assert slot.app_id is None


class TestSlotManager:
    """Test slot manager."""

    def test_initialization(self):
        manager = SlotManager(max_slots=5)

        assert manager.total_slots() == 5
        assert manager.free_slots() == 5
        assert len(manager.active_slots()) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            SlotManager(max_slots=0)

    def test_acquire_until_full(self):
        manager = SlotManager(max_slots=2)

        manager.acquire_free_slot().bind("op-1", "a")
        manager.acquire_free_slot().bind("op-2", "b")

        assert manager.acquire_free_slot() is None
        assert manager.free_slots() == 0

    def test_claim_skips_busy_app(self):
        manager = SlotManager(max_slots=2)

        assert manager.claim("op-1", "nginx").slot_id == 0
        assert manager.claim("op-2", "nginx") is None
        assert manager.claim("op-3", "adguard-home").slot_id == 1
        assert manager.busy_apps() == {"nginx", "adguard-home"}

    def test_find_slot_and_app_activity(self):
        manager = SlotManager(max_slots=2)
        manager.acquire_free_slot().bind("op-1", "nginx")

        assert manager.find_slot_by_operation("op-1").slot_id == 0
        assert manager.find_slot_by_operation("missing") is None
        assert manager.is_app_active("nginx")
        assert not manager.is_app_active("adguard-home")


class GatedWork:
    """Work item that blocks until released; records start order."""

    def __init__(self, name, log, lock):
        self.name = name
        self.log = log
        self.lock = lock
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self):
        with self.lock:
            self.log.append(self.name)
        self.started.set()
        self.release.wait(5)


class TestOperationRunner:

    @pytest.fixture
    def runner(self):
        runner = OperationRunner(max_concurrent=2)
        yield runner
        runner.shutdown(wait=True, timeout=5)

    def test_runs_submitted_work(self, runner):
        done = threading.Event()

        runner.submit("op-1", "nginx", done.set)

        assert runner.wait_for("op-1", timeout=5)
        assert done.is_set()

    def test_concurrency_limit(self, runner):
        log, lock = [], threading.Lock()
        works = [GatedWork(f"op-{i}", log, lock) for i in range(3)]

        for i, work in enumerate(works):
            runner.submit(work.name, f"app-{i}", work)

        assert works[0].started.wait(5)
        assert works[1].started.wait(5)
        assert not works[2].started.wait(0.2)
        assert runner.pending_count() == 1
        assert runner.active_count() == 2

        works[0].release.set()
        assert works[2].started.wait(5)

        for work in works:
            work.release.set()
        assert runner.wait_idle(timeout=5)

    def test_same_app_is_serialized(self, runner):
        """A second operation for a busy app waits; other apps overtake it."""
        log, lock = [], threading.Lock()
        install = GatedWork("install", log, lock)
        uninstall = GatedWork("uninstall", log, lock)
        other = GatedWork("other", log, lock)

        runner.submit("op-1", "nginx", install)
        runner.submit("op-2", "nginx", uninstall)
        runner.submit("op-3", "adguard-home", other)

        assert install.started.wait(5)
        assert other.started.wait(5)
        assert not uninstall.started.wait(0.2)

        install.release.set()
        assert uninstall.started.wait(5)

        uninstall.release.set()
        other.release.set()
        assert runner.wait_idle(timeout=5)
        assert log.index("install") < log.index("uninstall")

    def test_failing_work_releases_slot(self, runner):
        def broken():
            raise RuntimeError("boom")

        runner.submit("op-1", "nginx", broken)
        assert runner.wait_for("op-1", timeout=5)

        done = threading.Event()
        runner.submit("op-2", "nginx", done.set)
        assert runner.wait_for("op-2", timeout=5)
        assert done.is_set()

    def test_duplicate_submission_rejected(self, runner):
        gate = threading.Event()
        runner.submit("op-1", "nginx", lambda: gate.wait(5))

        with pytest.raises(ValueError):
            runner.submit("op-1", "nginx", lambda: None)

        gate.set()

    def test_submit_after_shutdown_fails(self):
        runner = OperationRunner(max_concurrent=1)
        runner.shutdown(wait=True)

        with pytest.raises(RuntimeError):
            runner.submit("op-1", "nginx", lambda: None)
        assert not runner.is_accepting()

    def test_shutdown_drops_pending(self):
        runner = OperationRunner(max_concurrent=1)
        gate = threading.Event()
        ran = threading.Event()

        runner.submit("op-1", "a", lambda: gate.wait(5))
        runner.submit("op-2", "b", ran.set)

        runner.shutdown(wait=False)
        gate.set()

        assert runner.wait_idle(timeout=5)
        assert not ran.is_set()

    def test_shutdown_reports_dropped_operations(self):
        runner = OperationRunner(max_concurrent=1)
        gate = threading.Event()
        dropped = []

        def broken_listener(operation_id):
            raise RuntimeError("listener failed")

        runner.add_drop_listener(broken_listener)
        runner.add_drop_listener(dropped.append)

        runner.submit("op-1", "a", lambda: gate.wait(5))
        runner.submit("op-2", "b", lambda: None)
        runner.submit("op-3", "c", lambda: None)

        runner.shutdown(wait=False)
        gate.set()

        assert runner.wait_idle(timeout=5)
        assert dropped == ["op-2", "op-3"]
