"""Alembic environment for the BetaBuddy relationship store.

``upgrade_head`` hands over an open connection through
``config.attributes["connection"]``. The ``alembic`` command line has none and
falls back to ``sqlalchemy.url`` or ``DATABASE_URI``.
"""

from __future__ import annotations

from alembic import context
from sqlalchemy import create_engine, pool

from betabuddy.adapters.sqlalchemy.mappings import metadata
from betabuddy.config import get_database_config

config = context.config

# SQLite cannot ALTER most constraints in place.
_OPTIONS = {"target_metadata": metadata, "render_as_batch": True, "compare_type": True}


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(**options: object) -> None:
    context.configure(**_OPTIONS, **options)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations() -> None:
    if context.is_offline_mode():
        _migrate(url=_database_url(), literal_binds=True)
        return

    connection = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection=connection)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as own_connection:
            _migrate(connection=own_connection)
    finally:
        engine.dispose()


run_migrations()
