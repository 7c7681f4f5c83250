#store_engine\core\models.py

"""Core domain models (business logic)."""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_percent(value: float) -> int:
    """Round and clamp a progress value into [0, 100]."""
    return max(0, min(100, int(round(value))))


class OperationAction(Enum):
    """Lifecycle action requested for an application."""

    INSTALL = "install"
    REDEPLOY = "redeploy"
    UNINSTALL = "uninstall"


class OperationStatus(Enum):
    """Operation state machine."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_STATUSES = {OperationStatus.SUCCESS, OperationStatus.ERROR}


class OperationEventType(Enum):
    """Event types published while an operation runs."""

    STARTED = "started"
    STEP = "step"
    PULL_PROGRESS = "pull.progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StackStatus(Enum):
    """Installed stack status."""

    INSTALLED = "installed"
    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    UPDATING = "updating"
    UNINSTALLING = "uninstalling"
    ERROR = "error"


# ============================================
# OPERATION
# ============================================

@dataclass
class Operation:
    """One lifecycle request tracked from creation to a terminal state."""

    # Identity
    operation_id: str
    app_id: str
    action: OperationAction

    # State
    status: OperationStatus = OperationStatus.QUEUED
    progress_percent: int = 0
    current_step: str = "queued"
    error_message: Optional[str] = None

    # Lifecycle timestamps
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(app_id: str, action: OperationAction) -> "Operation":
        return Operation(operation_id=uuid4().hex, app_id=app_id, action=action)

    # -------------------------
    # STATE TRANSITIONS
    # -------------------------

    def start(self) -> None:
        """Transition from QUEUED to RUNNING."""
        if self.status != OperationStatus.QUEUED:
            raise ValueError(f"Cannot start from {self.status.value} state")

        now = utcnow()
        self.status = OperationStatus.RUNNING
        self.started_at = now
        self.updated_at = now

    def advance(self, step: str, percent: float) -> None:
        """Record a new phase; progress never moves backwards while running."""
        if self.status != OperationStatus.RUNNING:
            raise ValueError(f"Cannot advance from {self.status.value} state")

        self.current_step = step
        self.progress_percent = max(self.progress_percent, clamp_percent(percent))
        self.updated_at = utcnow()

    def succeed(self, step: str = "completed") -> None:
        """Transition from RUNNING to SUCCESS."""
        if self.status != OperationStatus.RUNNING:
            raise ValueError(f"Cannot complete from {self.status.value} state")

        now = utcnow()
        self.status = OperationStatus.SUCCESS
        self.current_step = step
        self.progress_percent = 100
        self.error_message = None
        self.finished_at = now
        self.updated_at = now

    def fail(self, error_message: str) -> None:
        """Transition to ERROR, keeping the last reported progress and step."""
        if self.is_terminal():
            raise ValueError(f"Cannot fail from {self.status.value} state")

        now = utcnow()
        self.status = OperationStatus.ERROR
        self.error_message = error_message
        self.finished_at = now
        self.updated_at = now

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.operation_id,
            "appId": self.app_id,
            "action": self.action.value,
            "status": self.status.value,
            "progressPercent": self.progress_percent,
            "currentStep": self.current_step,
            "errorMessage": self.error_message,
            "startedAt": _iso(self.started_at),
            "finishedAt": _iso(self.finished_at),
            "updatedAt": _iso(self.updated_at),
        }


# ============================================
# EVENTS
# ============================================

@dataclass(frozen=True)
class ProgressDetail:
    """Byte counters reported by the engine for a single pull layer."""

    current: int = 0
    total: int = 0
    percent: Optional[float] = None

    @staticmethod
    def from_counters(current: Any, total: Any) -> "ProgressDetail":
        current_value = _to_number(current)
        total_value = _to_number(total)
        percent = round(current_value / total_value * 100, 2) if total_value > 0 else None
        return ProgressDetail(current=current_value, total=total_value, percent=percent)

    def to_dict(self) -> Dict[str, Any]:
        return {"current": self.current, "total": self.total, "percent": self.percent}


@dataclass(frozen=True)
class PullEvent:
    """Normalized entry of an image pull stream."""

    status: str
    layer_id: Optional[str] = None
    progress: Optional[str] = None
    progress_detail: Optional[ProgressDetail] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class OperationEvent:
    """Transient projection of an operation transition."""

    event_type: OperationEventType
    operation_id: str
    app_id: str
    action: OperationAction
    status: OperationStatus
    progress_percent: int
    step: str
    timestamp: datetime
    message: Optional[str] = None
    image: Optional[str] = None
    docker_status: Optional[str] = None
    progress_detail: Optional[ProgressDetail] = None

    @staticmethod
    def from_operation(
        operation: Operation,
        event_type: OperationEventType,
        *,
        message: Optional[str] = None,
        image: Optional[str] = None,
        docker_status: Optional[str] = None,
        progress_detail: Optional[ProgressDetail] = None,
    ) -> "OperationEvent":
        return OperationEvent(
            event_type=event_type,
            operation_id=operation.operation_id,
            app_id=operation.app_id,
            action=operation.action,
            status=operation.status,
            progress_percent=operation.progress_percent,
            step=operation.current_step,
            timestamp=utcnow(),
            message=message,
            image=image,
            docker_status=docker_status,
            progress_detail=progress_detail,
        )

    def to_wire(self) -> Dict[str, Any]:
        """Shape delivered to stream transports."""
        payload: Dict[str, Any] = {
            "type": self.event_type.value,
            "operationId": self.operation_id,
            "appId": self.app_id,
            "action": self.action.value,
            "status": self.status.value,
            "progressPercent": self.progress_percent,
            "step": self.step,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.message is not None:
            payload["message"] = self.message
        if self.image is not None:
            payload["image"] = self.image
        if self.docker_status is not None:
            payload["dockerStatus"] = self.docker_status
        if self.progress_detail is not None:
            payload["progressDetail"] = self.progress_detail.to_dict()
        return payload


# ============================================
# INSTALLED STACK
# ============================================

@dataclass
class InstalledStack:
    """Durable deployment record, one per app."""

    app_id: str
    template_name: str
    stack_name: str
    compose_path: str
    status: StackStatus = StackStatus.NOT_INSTALLED
    web_ui_port: Optional[int] = None
    env: Dict[str, str] = field(default_factory=dict)

    # Operator overrides
    display_name: Optional[str] = None
    icon_url: Optional[str] = None

    installed_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=utcnow)

    # Update-check cache
    is_up_to_date: bool = True
    local_digest: Optional[str] = None
    remote_digest: Optional[str] = None
    last_update_check: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status != StackStatus.NOT_INSTALLED

    @property
    def env_path(self) -> str:
        return os.path.join(os.path.dirname(self.compose_path), ".env")


# ============================================
# DIGESTS
# ============================================

@dataclass(frozen=True)
class ImageDigestState:
    image: str
    local_digest: Optional[str]
    remote_digest: Optional[str]

    @property
    def update_available(self) -> bool:
        return bool(
            self.local_digest
            and self.remote_digest
            and self.local_digest != self.remote_digest
        )


@dataclass(frozen=True)
class StoreAppUpdateState:
    update_available: bool = False
    local_digest: Optional[str] = None
    remote_digest: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class MaterializedStack:
    """Paths written for one stack by the compose materializer."""

    stack_dir: str
    compose_path: str
    env_path: str
    stack_name: str
    web_ui_port: Optional[int] = None


@dataclass(frozen=True)
class UpdateCheckResult:
    app_id: str
    update_available: bool
    local_digest: Optional[str]
    remote_digest: Optional[str]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _to_number(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)
