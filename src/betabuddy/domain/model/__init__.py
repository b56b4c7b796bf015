"""Domain model for the relationship engine."""

from __future__ import annotations

from .delta import FieldChange, RecordDelta
from .enums import (
    EdgeState,
    LifecycleRank,
    OutcomeStatus,
    RejectionReason,
    RelationshipField,
    TransitionKind,
)
from .user import UserRecord

__all__ = [
    "EdgeState",
    "FieldChange",
    "LifecycleRank",
    "OutcomeStatus",
    "RecordDelta",
    "RejectionReason",
    "RelationshipField",
    "TransitionKind",
    "UserRecord",
]
