import logging
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import Connection, create_engine, pool
from sqlmodel import SQLModel

import datalab_server.models  # noqa: F401
from alembic import context
from datalab_server.settings import Settings

config = context.config

# Leave logging alone when embedded in the app or tests.
if config.config_file_name is not None and "connection" not in config.attributes and not logging.getLogger().handlers:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = SQLModel.metadata


def _database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    database_path = Settings().database_path
    Path(database_path).parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{database_path}"


def _run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_migrations(connection)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
