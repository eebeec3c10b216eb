from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from gamechanger.models import Base

# Alembic Config object, provides access to .ini values
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _db_url_from_env() -> str:
    # Prefer explicit DATABASE_URL
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        # the app uses the async driver; migrations run on the sync one
        return db_url.replace("+aiosqlite", "")

    db_path = os.getenv("DB_PATH", "data/gamechanger.sqlite3")
    # sync driver for alembic
    return f"sqlite:///{db_path}"


def run_migrations_offline() -> None:
    url = _db_url_from_env()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _db_url_from_env()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

