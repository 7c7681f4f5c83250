#store_engine\infrastructure\postgres\repository.py

"""PostgreSQL repository implementations using SQLAlchemy."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from store_engine.core.errors import (
    OperationAlreadyExists,
    OperationNotFound,
    StorePersistenceError,
)
from store_engine.core.models import InstalledStack, Operation, StackStatus, utcnow
from store_engine.core.repository import OperationRepository, StackRepository
from store_engine.infrastructure.postgres.database import get_session_factory
from store_engine.infrastructure.postgres.models import AppStackORM, StoreOperationORM

logger = logging.getLogger(__name__)

_META_FIELDS = {"display_name", "icon_url"}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Some drivers hand timestamps back naive; they are stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ============================================
# Mapping Functions
# ============================================

def operation_orm_to_domain(orm: StoreOperationORM) -> Operation:
    """Convert ORM model to domain model."""
    return Operation(
        operation_id=orm.id,
        app_id=orm.app_id,
        action=orm.action,
        status=orm.status,
        progress_percent=orm.progress_percent,
        current_step=orm.current_step,
        error_message=orm.error_message,
        created_at=_as_utc(orm.created_at),
        started_at=_as_utc(orm.started_at),
        finished_at=_as_utc(orm.finished_at),
        updated_at=_as_utc(orm.updated_at),
    )


def operation_domain_to_orm(operation: Operation) -> StoreOperationORM:
    """Convert domain model to ORM model."""
    return StoreOperationORM(
        id=operation.operation_id,
        app_id=operation.app_id,
        action=operation.action,
        status=operation.status,
        progress_percent=operation.progress_percent,
        current_step=operation.current_step,
        error_message=operation.error_message,
        created_at=operation.created_at,
        started_at=operation.started_at,
        finished_at=operation.finished_at,
        updated_at=operation.updated_at,
    )


def stack_orm_to_domain(orm: AppStackORM) -> InstalledStack:
    return InstalledStack(
        app_id=orm.app_id,
        template_name=orm.template_name,
        stack_name=orm.stack_name,
        compose_path=orm.compose_path,
        status=orm.status,
        web_ui_port=orm.web_ui_port,
        env=dict(orm.env or {}),
        display_name=orm.display_name,
        icon_url=orm.icon_url,
        installed_at=_as_utc(orm.installed_at),
        updated_at=_as_utc(orm.updated_at),
        is_up_to_date=orm.is_up_to_date,
        local_digest=orm.local_digest,
        remote_digest=orm.remote_digest,
        last_update_check=_as_utc(orm.last_update_check),
    )


def _apply_stack(orm: AppStackORM, stack: InstalledStack) -> None:
    orm.template_name = stack.template_name
    orm.stack_name = stack.stack_name
    orm.compose_path = stack.compose_path
    orm.status = stack.status
    orm.web_ui_port = stack.web_ui_port
    orm.env = dict(stack.env)
    orm.display_name = stack.display_name
    orm.icon_url = stack.icon_url
    orm.is_up_to_date = stack.is_up_to_date
    orm.local_digest = stack.local_digest
    orm.remote_digest = stack.remote_digest
    orm.last_update_check = stack.last_update_check


# ============================================
# Operations
# ============================================

class PostgresOperationRepository(OperationRepository):
    """PostgreSQL implementation using SQLAlchemy with dependency injection."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Args:
            session_factory: SQLAlchemy session factory. If None, uses default production factory.
        """
        self._session_factory = session_factory or get_session_factory()

    def _get_session(self) -> Session:
        return self._session_factory()

    def create(self, operation: Operation) -> None:
        session = self._get_session()
        try:
            session.add(operation_domain_to_orm(operation))
            session.commit()
            logger.debug(f"[postgres] create operation {operation.operation_id}")
        except IntegrityError as e:
            session.rollback()
            raise OperationAlreadyExists(
                f"Operation {operation.operation_id} already exists"
            ) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StorePersistenceError(f"Failed to create operation: {e}") from e
        finally:
            session.close()

    def get(self, operation_id: str) -> Optional[Operation]:
        session = self._get_session()
        try:
            orm = session.get(StoreOperationORM, operation_id)
            return operation_orm_to_domain(orm) if orm else None
        except SQLAlchemyError as e:
            raise StorePersistenceError(f"Failed to get operation: {e}") from e
        finally:
            session.close()

    def update(self, operation: Operation) -> None:
        session = self._get_session()
        try:
            orm = session.get(StoreOperationORM, operation.operation_id)
            if orm is None:
                raise OperationNotFound(f"Operation {operation.operation_id} not found")

            orm.status = operation.status
            orm.progress_percent = operation.progress_percent
            orm.current_step = operation.current_step
            orm.error_message = operation.error_message
            orm.started_at = operation.started_at
            orm.finished_at = operation.finished_at
            orm.updated_at = operation.updated_at

            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorePersistenceError(f"Failed to update operation: {e}") from e
        finally:
            session.close()


# ============================================
# Stacks
# ============================================

class PostgresStackRepository(StackRepository):

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_factory()

    def _get_session(self) -> Session:
        return self._session_factory()

    # -------------------------
    # READ
    # -------------------------

    def get(self, app_id: str) -> Optional[InstalledStack]:
        session = self._get_session()
        try:
            orm = session.get(AppStackORM, app_id)
            return stack_orm_to_domain(orm) if orm else None
        except SQLAlchemyError as e:
            raise StorePersistenceError(f"Failed to get stack: {e}") from e
        finally:
            session.close()

    def list_all(self) -> List[InstalledStack]:
        session = self._get_session()
        try:
            rows = session.scalars(select(AppStackORM).order_by(AppStackORM.app_id)).all()
            return [stack_orm_to_domain(orm) for orm in rows]
        except SQLAlchemyError as e:
            raise StorePersistenceError(f"Failed to list stacks: {e}") from e
        finally:
            session.close()

    def find_by_web_ui_port(
        self,
        port: int,
        exclude_app_id: Optional[str] = None,
    ) -> Optional[InstalledStack]:
        session = self._get_session()
        try:
            query = select(AppStackORM).where(
                AppStackORM.web_ui_port == port,
                AppStackORM.status != StackStatus.NOT_INSTALLED,
            )
            if exclude_app_id:
                query = query.where(AppStackORM.app_id != exclude_app_id)

            orm = session.scalars(query.order_by(AppStackORM.app_id).limit(1)).first()
            return stack_orm_to_domain(orm) if orm else None
        except SQLAlchemyError as e:
            raise StorePersistenceError(f"Failed to query stacks by port: {e}") from e
        finally:
            session.close()

    # -------------------------
    # WRITE
    # -------------------------

    def upsert(self, stack: InstalledStack, mark_installed_at: bool = False) -> None:
        session = self._get_session()
        try:
            now = utcnow()
            orm = session.get(AppStackORM, stack.app_id)
            if orm is None:
                orm = AppStackORM(app_id=stack.app_id, installed_at=stack.installed_at)
                session.add(orm)

            _apply_stack(orm, stack)

            if mark_installed_at and orm.installed_at is None:
                orm.installed_at = now
            orm.updated_at = now

            session.commit()
            logger.debug(f"[postgres] upsert stack {stack.app_id} ({stack.status.value})")
        except SQLAlchemyError as e:
            session.rollback()
            raise StorePersistenceError(f"Failed to upsert stack {stack.app_id}: {e}") from e
        finally:
            session.close()

    def mark_not_installed(self, app_id: str) -> None:
        self._patch(app_id, {"status": StackStatus.NOT_INSTALLED})

    def patch_meta(self, app_id: str, fields: Dict[str, Optional[str]]) -> None:
        unknown = set(fields) - _META_FIELDS
        if unknown:
            raise ValueError(f"Unsupported stack meta field(s): {', '.join(sorted(unknown))}")
        self._patch(app_id, dict(fields))

    def update_update_status(
        self,
        app_id: str,
        *,
        is_up_to_date: bool,
        local_digest: Optional[str],
        remote_digest: Optional[str],
    ) -> None:
        self._patch(
            app_id,
            {
                "is_up_to_date": is_up_to_date,
                "local_digest": local_digest,
                "remote_digest": remote_digest,
                "last_update_check": utcnow(),
            },
        )

    def _patch(self, app_id: str, values: Dict) -> None:
        session = self._get_session()
        try:
            orm = session.get(AppStackORM, app_id)
            if orm is None:
                return

            for name, value in values.items():
                setattr(orm, name, value)
            orm.updated_at = utcnow()

            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorePersistenceError(f"Failed to update stack {app_id}: {e}") from e
        finally:
            session.close()
