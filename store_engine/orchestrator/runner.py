#store_engine\orchestrator\runner.py
"""Operation runner - bounded worker threads with per-app single flight."""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

from store_engine.orchestrator.slots import Slot, SlotManager

logger = logging.getLogger(__name__)


@dataclass
class _Job:
    operation_id: str
    app_id: str
    work: Callable[[], None]
    done: threading.Event


class OperationRunner:
    """
    Runs submitted operations on worker threads.

    Policy:
    - at most `max_concurrent` operations run at once (one slot each)
    - pending operations start in FIFO order
    - an operation never starts while another one for the same app runs;
      later operations for other apps may overtake it
    """

    def __init__(self, max_concurrent: int = 4, thread_name_prefix: str = "store-op"):
        self.slots = SlotManager(max_concurrent)
        self._thread_name_prefix = thread_name_prefix

        self._pending: Deque[_Job] = deque()
        self._jobs: Dict[str, _Job] = {}
        self._cond = threading.Condition()
        self._accepting = True
        self._drop_listeners: List[Callable[[str], None]] = []

    # -------------------------
    # SUBMISSION
    # -------------------------

    def is_accepting(self) -> bool:
        with self._cond:
            return self._accepting

    def add_drop_listener(self, callback: Callable[[str], None]) -> None:
        """Called with the operation id of every pending job dropped by shutdown()."""
        self._drop_listeners.append(callback)

    def submit(self, operation_id: str, app_id: str, work: Callable[[], None]) -> None:
        with self._cond:
            if not self._accepting:
                raise RuntimeError("Operation runner is shut down")
            if operation_id in self._jobs:
                raise ValueError(f"Operation {operation_id} already submitted")

            job = _Job(operation_id, app_id, work, threading.Event())
            self._jobs[operation_id] = job
            self._pending.append(job)

            logger.debug(
                f"[runner] queued {operation_id} app={app_id} "
                f"(pending={len(self._pending)}, {self.slots})"
            )
            self._dispatch_locked()

    def _dispatch_locked(self) -> None:
        if not self._accepting:
            return

        for job in list(self._pending):
            if self.slots.free_slots() == 0:
                return

            # Busy app: the job keeps its place, later apps may overtake it
            slot = self.slots.claim(job.operation_id, job.app_id)
            if slot is None:
                continue

            self._pending.remove(job)

            thread = threading.Thread(
                target=self._run_in_thread,
                args=(job, slot),
                name=f"{self._thread_name_prefix}-{job.operation_id[:8]}",
                daemon=True,
            )
            thread.start()
            logger.info(f"[runner] ▶️ started {job.operation_id} in slot {slot.slot_id}")

    def _run_in_thread(self, job: _Job, slot: Slot) -> None:
        try:
            job.work()
        except Exception as e:
            logger.error(f"[runner] [{job.operation_id}] unhandled error: {e}", exc_info=True)
        finally:
            with self._cond:
                slot.release()
                self._jobs.pop(job.operation_id, None)
                job.done.set()
                self._dispatch_locked()
                self._cond.notify_all()

    # -------------------------
    # WAITING
    # -------------------------

    def wait_for(self, operation_id: str, timeout: Optional[float] = None) -> bool:
        """
        Block until the operation's work has returned.

        Unknown or already finished ids return True immediately.
        """
        with self._cond:
            job = self._jobs.get(operation_id)
        if job is None:
            return True
        return job.done.wait(timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending or running."""
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            while self._jobs:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._cond.wait(remaining)
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop starting new work. Pending operations are dropped and reported to
        the drop listeners; running ones finish on their own.
        """
        with self._cond:
            self._accepting = False
            dropped = list(self._pending)
            self._pending.clear()
            for job in dropped:
                self._jobs.pop(job.operation_id, None)
                job.done.set()
            self._cond.notify_all()

        if dropped:
            logger.warning(f"[runner] shutdown dropped {len(dropped)} pending operation(s)")

        for job in dropped:
            for callback in self._drop_listeners:
                try:
                    callback(job.operation_id)
                except Exception as e:
                    logger.error(
                        f"[runner] drop listener failed for {job.operation_id}: {e}",
                        exc_info=True,
                    )

        if wait:
            self.wait_idle(timeout)

    # -------------------------
    # INTROSPECTION
    # -------------------------

    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending)

    def active_count(self) -> int:
        with self._cond:
            return len(self.slots.active_slots())
