#store_engine\infrastructure\memory\repository.py

import copy
from threading import Lock
from typing import Dict, List, Optional

from store_engine.core.errors import OperationAlreadyExists, OperationNotFound
from store_engine.core.models import InstalledStack, Operation, StackStatus, utcnow
from store_engine.core.repository import OperationRepository, StackRepository


class InMemoryOperationRepository(OperationRepository):
    """Stores snapshots; callers never share an instance with the store."""

    def __init__(self):
        self._store: Dict[str, Operation] = {}
        self._lock = Lock()

    def create(self, operation: Operation) -> None:
        with self._lock:
            if operation.operation_id in self._store:
                raise OperationAlreadyExists(f"Operation {operation.operation_id} already exists")
            self._store[operation.operation_id] = copy.deepcopy(operation)

    def get(self, operation_id: str) -> Optional[Operation]:
        with self._lock:
            stored = self._store.get(operation_id)
            return copy.deepcopy(stored) if stored else None

    def update(self, operation: Operation) -> None:
        with self._lock:
            if operation.operation_id not in self._store:
                raise OperationNotFound(f"Operation {operation.operation_id} not found")
            self._store[operation.operation_id] = copy.deepcopy(operation)


class InMemoryStackRepository(StackRepository):

    def __init__(self):
        self._store: Dict[str, InstalledStack] = {}
        self._lock = Lock()

    def get(self, app_id: str) -> Optional[InstalledStack]:
        with self._lock:
            stored = self._store.get(app_id)
            return copy.deepcopy(stored) if stored else None

    def list_all(self) -> List[InstalledStack]:
        with self._lock:
            return [copy.deepcopy(self._store[app_id]) for app_id in sorted(self._store)]

    def find_by_web_ui_port(
        self,
        port: int,
        exclude_app_id: Optional[str] = None,
    ) -> Optional[InstalledStack]:
        with self._lock:
            for stack in self._store.values():
                if stack.app_id == exclude_app_id or not stack.is_active():
                    continue
                if stack.web_ui_port == port:
                    return copy.deepcopy(stack)
        return None

    def upsert(self, stack: InstalledStack, mark_installed_at: bool = False) -> None:
        with self._lock:
            stored = copy.deepcopy(stack)
            now = utcnow()
            previous = self._store.get(stack.app_id)

            installed_at = stored.installed_at or (previous.installed_at if previous else None)
            if mark_installed_at and installed_at is None:
                installed_at = now

            stored.installed_at = installed_at
            stored.updated_at = now
            self._store[stack.app_id] = stored

    def mark_not_installed(self, app_id: str) -> None:
        with self._lock:
            stack = self._store.get(app_id)
            if stack is None:
                return
            stack.status = StackStatus.NOT_INSTALLED
            stack.updated_at = utcnow()

    def patch_meta(self, app_id: str, fields: Dict[str, Optional[str]]) -> None:
        with self._lock:
            stack = self._store.get(app_id)
            if stack is None:
                return
            if "display_name" in fields:
                stack.display_name = fields["display_name"]
            if "icon_url" in fields:
                stack.icon_url = fields["icon_url"]
            stack.updated_at = utcnow()

    def update_update_status(
        self,
        app_id: str,
        *,
        is_up_to_date: bool,
        local_digest: Optional[str],
        remote_digest: Optional[str],
    ) -> None:
        with self._lock:
            stack = self._store.get(app_id)
            if stack is None:
                return
            stack.is_up_to_date = is_up_to_date
            stack.local_digest = local_digest
            stack.remote_digest = remote_digest
            stack.last_update_check = utcnow()
