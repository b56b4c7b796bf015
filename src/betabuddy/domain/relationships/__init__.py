"""Bidirectional friend-graph synchronization over single-document writes."""

from __future__ import annotations

from .accounts import SweepReport, create_account, delete_account, sweep_deleted_account
from .guard import TransitionGuard
from .locks import KeyedLocks
from .outcomes import TransitionOutcome
from .propagator import DrainReport, TwoPhasePropagator
from .reconciliation import ReconciliationReport, ReconciliationScanner, Repair
from .service import RelationshipService
from .state_machine import (
    EdgeTarget,
    Rejected,
    TransitionPlan,
    edge_state,
    pair_key,
    resolve_target,
    target_deltas,
    transition,
)

__all__ = [
    "DrainReport",
    "EdgeTarget",
    "KeyedLocks",
    "ReconciliationReport",
    "ReconciliationScanner",
    "Rejected",
    "RelationshipService",
    "Repair",
    "SweepReport",
    "TransitionGuard",
    "TransitionOutcome",
    "TransitionPlan",
    "TwoPhasePropagator",
    "create_account",
    "delete_account",
    "edge_state",
    "pair_key",
    "resolve_target",
    "sweep_deleted_account",
    "target_deltas",
    "transition",
]
