"""Alembic entry points for the user document and propagation log schema."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from betabuddy.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

log = getLogger(__name__)

SCRIPT_LOCATION: Final[Path] = Path(__file__).resolve().parent


def alembic_config(database_uri: str | None = None) -> Config:
    """Config for the bundled revisions; no alembic.ini is involved."""
    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def head_revision() -> str | None:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def _revision_of(connection: Connection) -> str | None:
    return MigrationContext.configure(connection).get_current_revision()


def current_revision(engine: Engine) -> str | None:
    with engine.connect() as connection:
        return _revision_of(connection)


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema to the newest revision.

    Given an ``engine``, the upgrade runs on one of its connections in a single
    transaction, so a StaticPool in-memory SQLite database keeps its tables.
    Otherwise ``env.py`` opens its own engine for ``database_uri`` or the
    configured database.
    """

    if engine is None:
        command.upgrade(alembic_config(database_uri or get_database_config().uri), "head")
        return

    config = alembic_config()
    with engine.begin() as connection:
        before = _revision_of(connection)
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
        after = _revision_of(connection)
    if before != after:
        log.info("Migrated relationship store from %s to %s", before or "empty", after)
