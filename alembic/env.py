"""Alembic environment for the store tables."""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from store_engine.infrastructure.postgres.config import settings
from store_engine.infrastructure.postgres.database import Base
from store_engine.infrastructure.postgres import models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# The store shares its database with other services; autogenerate only
# considers tables declared on Base.
STORE_TABLES = set(target_metadata.tables)
VERSION_TABLE = "store_alembic_version"


def database_url() -> str:
    """`alembic -x url=...` overrides the POSTGRES_* settings."""
    return context.get_x_argument(as_dictionary=True).get("url") or settings.database_url


def include_object(obj, name, type_, reflected, compare_to):
    if type_ == "table":
        return name in STORE_TABLES
    return True


def configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        version_table=VERSION_TABLE,
        version_table_schema=settings.db_schema,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a live connection."""
    configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        configure(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
