#store_engine\core\repository.py

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from store_engine.core.models import InstalledStack, Operation


class OperationRepository(ABC):
    """
    Persistence contract for operations.
    """

    @abstractmethod
    def create(self, operation: Operation) -> None:
        """
        Persist a new operation.
        Must fail if the operation id already exists.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, operation_id: str) -> Optional[Operation]:
        """
        Fetch operation by id.
        Returns None if not found.
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, operation: Operation) -> None:
        """
        Persist the current state of an existing operation.
        """
        raise NotImplementedError


class StackRepository(ABC):
    """
    Persistence contract for installed stacks, keyed by app id.
    """

    @abstractmethod
    def get(self, app_id: str) -> Optional[InstalledStack]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[InstalledStack]:
        """All stack rows ordered by app id, including not_installed ones."""
        raise NotImplementedError

    @abstractmethod
    def find_by_web_ui_port(
        self,
        port: int,
        exclude_app_id: Optional[str] = None,
    ) -> Optional[InstalledStack]:
        """
        Find an active (status != not_installed) stack publishing the port.
        """
        raise NotImplementedError

    @abstractmethod
    def upsert(self, stack: InstalledStack, mark_installed_at: bool = False) -> None:
        """
        Insert or update the stack row.
        installed_at is stamped only the first time mark_installed_at is set.
        """
        raise NotImplementedError

    @abstractmethod
    def mark_not_installed(self, app_id: str) -> None:
        """Keep the row, flip its status to not_installed."""
        raise NotImplementedError

    @abstractmethod
    def patch_meta(
        self,
        app_id: str,
        fields: Dict[str, Optional[str]],
    ) -> None:
        """Update operator overrides (display_name, icon_url)."""
        raise NotImplementedError

    @abstractmethod
    def update_update_status(
        self,
        app_id: str,
        *,
        is_up_to_date: bool,
        local_digest: Optional[str],
        remote_digest: Optional[str],
    ) -> None:
        """Store the latest update-check result and stamp last_update_check."""
        raise NotImplementedError
