"""Entry points the presentation layer calls for relationship changes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from betabuddy.config.propagation import PropagationConfig
from betabuddy.domain.model import OutcomeStatus, RejectionReason, TransitionKind
from betabuddy.domain.ports import DocumentNotFoundError, DocumentStoreError

from .guard import TransitionGuard
from .outcomes import TransitionOutcome, rejected, unavailable
from .propagator import TwoPhasePropagator
from .state_machine import (
    Rejected,
    TransitionPlan,
    edge_state,
    has_crossing_requests,
    resolve_target,
    target_deltas,
    transition,
)

if TYPE_CHECKING:
    from betabuddy.domain.model import EdgeState
    from betabuddy.domain.ports import DocumentStore, PropagationLog

log = logging.getLogger(__name__)


class RelationshipService:
    """Friend-graph operations for one trusted caller id at a time."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        config: PropagationConfig | None = None,
        propagation_log: PropagationLog | None = None,
        propagator: TwoPhasePropagator | None = None,
        guard: TransitionGuard | None = None,
    ) -> None:
        self.store = store
        self.config = config or PropagationConfig()
        self.propagator = propagator or TwoPhasePropagator(
            store, retry=self.config.retry, propagation_log=propagation_log
        )
        self.guard = guard or TransitionGuard(self.propagator)

    def send_request(self, self_id: str, other_id: str) -> TransitionOutcome:
        return self.perform(TransitionKind.SEND_REQUEST, self_id, other_id)

    def accept(self, self_id: str, other_id: str) -> TransitionOutcome:
        return self.perform(TransitionKind.ACCEPT, self_id, other_id)

    def reject(self, self_id: str, other_id: str) -> TransitionOutcome:
        return self.perform(TransitionKind.REJECT, self_id, other_id)

    def cancel(self, self_id: str, other_id: str) -> TransitionOutcome:
        return self.perform(TransitionKind.CANCEL, self_id, other_id)

    def unfriend(self, self_id: str, other_id: str) -> TransitionOutcome:
        return self.perform(TransitionKind.UNFRIEND, self_id, other_id)

    def perform(self, kind: TransitionKind, self_id: str, other_id: str) -> TransitionOutcome:
        if self_id == other_id:
            return rejected(kind, self_id, other_id, RejectionReason.SELF_REFERENCE)

        with self.guard.coalesce(kind, self_id, other_id):
            try:
                initiator, counterpart = self.guard.snapshot(self_id, other_id)
            except DocumentNotFoundError as exc:
                return rejected(
                    kind, self_id, other_id, RejectionReason.PARTY_GONE, detail=str(exc)
                )
            except DocumentStoreError as exc:
                return unavailable(kind, self_id, other_id, detail=str(exc))

            effective = kind
            if (
                kind is TransitionKind.SEND_REQUEST
                and self.config.auto_accept_mutual_requests
                and other_id in initiator.received_friend_requests
            ):
                log.info("%s already asked %s; sending becomes accepting", other_id, self_id)
                effective = TransitionKind.ACCEPT

            result = transition(effective, initiator, counterpart)
            if isinstance(result, Rejected):
                log.info("%s %s->%s rejected: %s", effective, self_id, other_id, result.reason)
                return rejected(effective, self_id, other_id, result.reason, detail=result.detail)

            outcome = self.propagator.propagate(result)

        if outcome.status is OutcomeStatus.APPLIED and effective is TransitionKind.SEND_REQUEST:
            self._settle_crossing_requests(self_id, other_id)
        return outcome

    def _settle_crossing_requests(self, self_id: str, other_id: str) -> None:
        """Resolve requests that both parties sent before seeing each other's.

        Whichever side finishes its two writes last finds both markers on its
        own document. Both sides compute the same target, so running this from
        both threads of a race is harmless.
        """

        try:
            mine = self.propagator.fetch(self_id)
            if not has_crossing_requests(mine, other_id):
                return
            theirs = self.propagator.fetch(other_id)
        except DocumentStoreError as exc:
            log.warning("Could not check %s<->%s for crossing requests: %s", self_id, other_id, exc)
            return

        target = resolve_target(
            mine, theirs, auto_accept=self.config.auto_accept_mutual_requests
        )
        mine_delta, theirs_delta = target_deltas(self_id, other_id, target)
        settle_kind = (
            TransitionKind.ACCEPT
            if self.config.auto_accept_mutual_requests
            else TransitionKind.CANCEL
        )
        outcome = self.propagator.propagate(
            TransitionPlan(settle_kind, initiator=mine_delta, counterpart=theirs_delta)
        )
        log.info(
            "Crossing requests %s<->%s settled as %s (%s)",
            self_id,
            other_id,
            target.rank.name.lower(),
            outcome.status,
        )

    def relationship_state(self, self_id: str, other_id: str) -> EdgeState:
        """Edge between the caller and ``other_id`` as seen from the caller."""

        mine = self.propagator.fetch(self_id)
        try:
            theirs = self.propagator.fetch(other_id)
        except DocumentNotFoundError:
            theirs = None
        return edge_state(mine, theirs, other_id=other_id)

    def discoverable_users(self, self_id: str) -> list[str]:
        """Users the caller could send a request to right now."""

        mine = self.propagator.fetch(self_id)
        excluded = mine.references() | {self_id}
        return sorted(user_id for user_id in self.store.list_ids() if user_id not in excluded)

    def feed_audience(self, self_id: str) -> frozenset[str]:
        """Authors whose posts appear in the caller's feed."""

        mine = self.propagator.fetch(self_id)
        return mine.friends | {self_id}
