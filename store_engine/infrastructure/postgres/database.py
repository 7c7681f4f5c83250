#store_engine\infrastructure\postgres\database.py

"""SQLAlchemy engine and session factories for the store tables."""

from threading import Lock
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from store_engine.infrastructure.postgres.config import DatabaseSettings, settings as default_settings


# ============================================
# Base for ORM models
# ============================================
Base = declarative_base()


# ============================================
# Engine
# ============================================
def create_db_engine(db_settings: Optional[DatabaseSettings] = None) -> Engine:
    """Pooled Postgres engine; every new connection lands in the configured schema."""
    db_settings = db_settings or default_settings

    engine = create_engine(
        db_settings.database_url,
        echo=db_settings.echo_sql,
        pool_pre_ping=True,
        pool_size=db_settings.pool_size,
        max_overflow=db_settings.max_overflow,
        pool_timeout=db_settings.pool_timeout,
        pool_recycle=db_settings.pool_recycle,
        connect_args={"application_name": db_settings.application_name},
    )

    schema = db_settings.db_schema

    @event.listens_for(engine, "connect")
    def set_search_path(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute(f'SET search_path TO "{schema}"')
        cursor.close()

    return engine


# Created on first use so importing the ORM models never opens a pool
_engine: Optional[Engine] = None
_engine_lock = Lock()


def get_engine() -> Engine:
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = create_db_engine()
        return _engine


# ============================================
# Sessions
# ============================================
def get_session_factory(engine_instance: Optional[Engine] = None) -> sessionmaker:
    """
    Session factory for the repositories.

    Tests pass their own engine; everything else shares the process engine.
    Objects stay readable after commit because repositories map them to
    domain models once the session is closed.
    """
    return sessionmaker(
        bind=engine_instance or get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


# ============================================
# Schema helpers (tests and local setups; production uses Alembic)
# ============================================
def init_db(engine_instance: Optional[Engine] = None) -> None:
    Base.metadata.create_all(bind=engine_instance or get_engine())


def drop_db(engine_instance: Optional[Engine] = None) -> None:
    Base.metadata.drop_all(bind=engine_instance or get_engine())
