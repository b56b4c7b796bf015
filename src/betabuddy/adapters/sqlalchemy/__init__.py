"""SQLAlchemy adapter package for BetaBuddy."""

from __future__ import annotations

from .engine import StartupError, configured_engine, is_started, shutdown, startup
from .mappings import (
    metadata,
    pending_propagation_table,
    user_document_table,
)
from .propagation_log import SqlAlchemyPropagationLog
from .store import SqlAlchemyDocumentStore

__all__ = [
    "SqlAlchemyDocumentStore",
    "SqlAlchemyPropagationLog",
    "StartupError",
    "configured_engine",
    "is_started",
    "metadata",
    "pending_propagation_table",
    "shutdown",
    "startup",
    "user_document_table",
]
