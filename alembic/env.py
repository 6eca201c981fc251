"""
Alembic environment configuration.

Runs migrations against DATABASE_URL using the async engine.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from campuslink.core.config import settings
from campuslink.core.database import Base

# Import models so their tables are registered on Base.metadata
from campuslink.modules.admissions import models as _admission_models  # noqa: F401
from campuslink.modules.principals import models as _principal_models  # noqa: F401
from campuslink.modules.verification import models as _verification_models  # noqa: F401

config = context.config

# The URL is passed directly rather than through config.set_main_option,
# since ConfigParser treats % as interpolation syntax.

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to the script output without connecting."""
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations over an async connection."""
    connectable = create_async_engine(settings.database_url, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
