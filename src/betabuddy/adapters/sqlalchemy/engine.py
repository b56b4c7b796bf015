"""Engine lifecycle for the SQLAlchemy adapter."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from betabuddy.config import get_database_config

from .migrations import upgrade_head

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """The relationship database was used before ``startup`` or started twice."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Open the relationship database and migrate it to the newest revision.

    A passed ``engine`` is adopted as is (tests hand in in-memory SQLite engines).
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        config = get_database_config()
        if database_uri is not None:
            config = replace(config, uri=database_uri)
        connect_args = {"timeout": config.timeout_seconds} if config.is_sqlite else {}
        engine = create_engine(config.uri, connect_args=connect_args)
    upgrade_head(engine=engine)
    _STATE.engine = engine
    return engine


def configured_engine() -> Engine:
    """Return the engine currently managed by the adapter."""

    if _STATE.engine is None:
        raise StartupError(
            "SQLAlchemy adapter not initialised. Call betabuddy.adapters.sqlalchemy."
            "engine.startup() first."
        )
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
