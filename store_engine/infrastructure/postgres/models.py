#store_engine\infrastructure\postgres\models.py
"""SQLAlchemy ORM models for database tables."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy import Enum as SQLEnum

from store_engine.core.models import OperationAction, OperationStatus, StackStatus
from store_engine.infrastructure.postgres.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class StoreOperationORM(Base):
    """
    Operation table - one row per lifecycle request.

    Indexes:
    - Primary key on id
    - Index on app_id for per-app history
    - Index on status for queued/running lookups
    """

    __tablename__ = "app_operations"

    id = Column(String(64), primary_key=True, nullable=False)
    app_id = Column(String(255), nullable=False, index=True)

    action = Column(
        SQLEnum(OperationAction, name="app_operation_action", values_callable=_enum_values),
        nullable=False,
    )
    status = Column(
        SQLEnum(OperationStatus, name="app_operation_status", values_callable=_enum_values),
        nullable=False,
        default=OperationStatus.QUEUED,
        index=True,
    )

    # Progress
    progress_percent = Column(Integer, nullable=False, default=0)
    current_step = Column(String(100), nullable=False, default="queued")
    error_message = Column(Text, nullable=True)

    # Lifecycle timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<StoreOperationORM(id={self.id}, app_id={self.app_id}, "
            f"action={self.action}, status={self.status})>"
        )


class AppStackORM(Base):
    """
    Installed stack table - one row per app, kept after uninstall.
    """

    __tablename__ = "app_stacks"

    app_id = Column(String(255), primary_key=True, nullable=False)
    template_name = Column(String(255), nullable=False)
    stack_name = Column(String(255), nullable=False)
    compose_path = Column(Text, nullable=False)

    status = Column(
        SQLEnum(StackStatus, name="app_stack_status", values_callable=_enum_values),
        nullable=False,
        default=StackStatus.NOT_INSTALLED,
        index=True,
    )
    web_ui_port = Column(Integer, nullable=True)
    env = Column(JSON, nullable=False, default=dict)

    # Operator overrides
    display_name = Column(String(255), nullable=True)
    icon_url = Column(Text, nullable=True)

    installed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Update check
    is_up_to_date = Column(Boolean, nullable=False, default=True)
    local_digest = Column(String(255), nullable=True)
    remote_digest = Column(String(255), nullable=True)
    last_update_check = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_app_stacks_web_ui_port", "web_ui_port"),
    )

    def __repr__(self) -> str:
        return f"<AppStackORM(app_id={self.app_id}, status={self.status}, port={self.web_ui_port})>"
