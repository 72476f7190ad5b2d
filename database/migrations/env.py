"""Alembic environment для MemeRadar (таблица tokens)."""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

from config.settings import get_settings
from radar import models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Alembic работает синхронно: меняем async-драйверы на sync-эквиваленты.
_SYNC_DRIVERS = {"+aiosqlite": "", "+asyncpg": "+psycopg"}


def sync_dsn(dsn: str) -> str:
    for async_driver, sync_driver in _SYNC_DRIVERS.items():
        dsn = dsn.replace(async_driver, sync_driver)
    return dsn


config.set_main_option("sqlalchemy.url", sync_dsn(get_settings().database.dsn))
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
