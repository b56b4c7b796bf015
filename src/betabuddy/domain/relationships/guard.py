"""Fresh-read precondition checks and coalescing of duplicate transitions."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from .locks import KeyedLocks

if TYPE_CHECKING:
    from collections.abc import Iterator

    from betabuddy.domain.model import TransitionKind, UserRecord

    from .propagator import TwoPhasePropagator


class TransitionGuard:
    """Makes repeated invocations of one transition converge.

    Preconditions are always evaluated against snapshots fetched right before
    the transition, never against a cached copy of the user. An identical
    transition already running in this process (same kind, same initiator,
    same counterpart) is waited for, so the duplicate then observes its effect
    and turns into a no-op.
    """

    def __init__(self, propagator: TwoPhasePropagator, *, locks: KeyedLocks | None = None) -> None:
        self._propagator = propagator
        self._locks = locks or KeyedLocks()

    @contextmanager
    def coalesce(self, kind: TransitionKind, self_id: str, other_id: str) -> Iterator[None]:
        with self._locks.hold((kind, self_id, other_id)):
            yield

    def snapshot(self, self_id: str, other_id: str) -> tuple[UserRecord, UserRecord]:
        """Fetch both parties, initiator first.

        Raises ``DocumentNotFoundError``, or another ``DocumentStoreError`` once
        retries are exhausted or the failure is not transient.
        """

        initiator = self._propagator.fetch(self_id)
        counterpart = self._propagator.fetch(other_id)
        return initiator, counterpart

    @property
    def in_flight(self) -> int:
        return len(self._locks)
