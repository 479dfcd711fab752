"""Alembic environment configuration for Keyward-Engine.

The database URL comes from ``KEYWARD_DB_URL`` (via KeywardSettings) unless
overridden with ``alembic -x sqlalchemy.url=... upgrade head``. Async driver
names are swapped for their sync counterparts since migrations run
synchronously.
"""

import sys
from pathlib import Path
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Ensure src/ is on sys.path for editable installs
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from keyward_engine.common.config import get_settings
from keyward_engine.common.database import sync_db_url
from keyward_engine.common.models import Base

# Registers license_keys with Base.metadata
import keyward_engine.licensing.models  # noqa: F401


config = context.config

cmd_url = context.get_x_argument(as_dictionary=True).get("sqlalchemy.url")
url = sync_db_url(cmd_url or get_settings().db_url)
# configparser treats % as interpolation
config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
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
