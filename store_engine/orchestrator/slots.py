#store_engine\orchestrator\slots.py

"""Slot manager for controlling operation concurrency."""

from typing import List, Optional, Set


class Slot:
    """One unit of operation capacity, bound to (operation, app) while busy."""

    def __init__(self, slot_id: int):
        self.slot_id = slot_id
        self.operation_id: Optional[str] = None
        self.app_id: Optional[str] = None

    def is_free(self) -> bool:
        return self.operation_id is None

    def bind(self, operation_id: str, app_id: str) -> None:
        if not self.is_free():
            raise ValueError(f"Slot {self.slot_id} already runs {self.operation_id}")
        self.operation_id = operation_id
        self.app_id = app_id

    def release(self) -> None:
        self.operation_id = None
        self.app_id = None

    def __repr__(self) -> str:
        if self.is_free():
            return f"<Slot {self.slot_id} free>"
        return f"<Slot {self.slot_id} {self.app_id}:{self.operation_id}>"


class SlotManager:
    """
    Fixed pool of slots. Not thread-safe; OperationRunner calls it under its
    own condition lock.
    """

    def __init__(self, max_slots: int):
        if max_slots < 1:
            raise ValueError("max_slots must be at least 1")

        self._slots = [Slot(i) for i in range(max_slots)]

    def acquire_free_slot(self) -> Optional[Slot]:
        return next((slot for slot in self._slots if slot.is_free()), None)

    def claim(self, operation_id: str, app_id: str) -> Optional[Slot]:
        """Bind the first free slot, or None when the app is busy or the pool is full."""
        if app_id in self.busy_apps():
            return None

        slot = self.acquire_free_slot()
        if slot is not None:
            slot.bind(operation_id, app_id)
        return slot

    def active_slots(self) -> List[Slot]:
        return [slot for slot in self._slots if not slot.is_free()]

    def busy_apps(self) -> Set[str]:
        return {slot.app_id for slot in self.active_slots()}

    def find_slot_by_operation(self, operation_id: str) -> Optional[Slot]:
        return next((slot for slot in self._slots if slot.operation_id == operation_id), None)

    def is_app_active(self, app_id: str) -> bool:
        return app_id in self.busy_apps()

    def total_slots(self) -> int:
        return len(self._slots)

    def free_slots(self) -> int:
        return self.total_slots() - len(self.active_slots())

    def __repr__(self) -> str:
        return f"<SlotManager {len(self.active_slots())}/{self.total_slots()} busy>"
