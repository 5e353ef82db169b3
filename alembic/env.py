"""
Alembic environment: runs migrations against the application's database.

The URL is read through gnl_auth.core.config, so DATABASE_URL (or .env)
is the single source of truth for the connection string.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

from gnl_auth.core.config import settings
from gnl_auth.db.base import Base

# every model module, so Base.metadata knows all tables for autogenerate
import gnl_auth.models.admin_log  # noqa: F401, E402
import gnl_auth.models.content_access  # noqa: F401, E402
import gnl_auth.models.privacy  # noqa: F401, E402
import gnl_auth.models.session  # noqa: F401, E402
import gnl_auth.models.token  # noqa: F401, E402
import gnl_auth.models.two_factor  # noqa: F401, E402
import gnl_auth.models.user  # noqa: F401, E402

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

target_metadata = Base.metadata


def run_migrations_online():
    connectable = create_engine(settings.DATABASE_URL)
    with connectable.connect() as conn:
        context.configure(connection=conn, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


def run_migrations_offline():
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
