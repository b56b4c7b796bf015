"""Domain port definitions for adapters."""

from __future__ import annotations

from .propagation_log import PendingPropagation, PropagationLog
from .store import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    StoreUnavailableError,
    WriteConflictError,
)

__all__ = [
    "DocumentExistsError",
    "DocumentNotFoundError",
    "DocumentStore",
    "DocumentStoreError",
    "PendingPropagation",
    "PropagationLog",
    "StoreUnavailableError",
    "WriteConflictError",
]
