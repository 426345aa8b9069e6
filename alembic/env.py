from logging.config import fileConfig

from sqlalchemy import pool, create_engine
from alembic import context

from database.config import DATABASE_URL
from database.models import Base
from database import campaign_models  # noqa: F401  registers the lifecycle tables

config = context.config

if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _url() -> str:
    # DATABASE_URL wins over alembic.ini so migrations hit the same database as the API
    return DATABASE_URL or config.get_main_option("sqlalchemy.url")


def run_migrations_offline():
    """Emit the migration SQL without connecting."""
    context.configure(
        url=_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
