"""Alembic environment for the DealDesk schema.

Migrations run over the synchronous driver (``DATABASE_URL_SYNC``); the app
itself only ever talks to the database through asyncpg.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from alembic import context
from sqlalchemy import engine_from_config, pool

from dealdesk.core.config import settings
from dealdesk.core.database import Base

import dealdesk.models  # noqa: F401  populate Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# An explicit -x url=... wins over the settings, for one-off runs against a copy
url = context.get_x_argument(as_dictionary=True).get("url") or settings.DATABASE_URL_SYNC
config.set_main_option("sqlalchemy.url", url)

target_metadata = Base.metadata

_CONFIGURE_KWARGS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_CONFIGURE_KWARGS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **_CONFIGURE_KWARGS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
