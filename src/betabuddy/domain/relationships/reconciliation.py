"""Out-of-band repair of relationship edges whose two halves drifted apart.

A run first replays the propagation log, so partially applied transitions
finish in the direction they were started. It then walks every pair of users
referenced by any relationship field and converges inconsistent pairs on the
state furthest along the lifecycle (friends, then request, then unrelated).
References to documents that no longer exist are removed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from betabuddy.domain.model import EdgeState, RelationshipField
from betabuddy.domain.ports import DocumentNotFoundError, DocumentStoreError

from .locks import KeyedLocks
from .propagator import DrainReport
from .state_machine import (
    EdgeTarget,
    edge_state,
    pair_key,
    resolve_target,
    target_deltas,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from betabuddy.domain.model import UserRecord
    from betabuddy.domain.ports import DocumentStore

    from .propagator import TwoPhasePropagator

log = logging.getLogger(__name__)

Pair = tuple[str, str]


@dataclass(frozen=True, slots=True)
class Repair:
    """Audit record of one repaired edge."""

    pair: Pair
    before: tuple[frozenset[RelationshipField], frozenset[RelationshipField]]
    target: EdgeTarget
    note: str = ""


@dataclass(slots=True)
class ReconciliationReport:
    drained: DrainReport = field(default_factory=DrainReport)
    pairs_checked: int = 0
    repairs: list[Repair] = field(default_factory=list)
    failures: dict[Pair, str] = field(default_factory=dict)
    # documents that could not be read while collecting pairs
    unreadable: dict[str, str] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return not (self.repairs or self.failures or self.unreadable or self.drained.remaining)


class ReconciliationScanner:
    def __init__(
        self,
        store: DocumentStore,
        propagator: TwoPhasePropagator,
        *,
        auto_accept: bool = True,
        max_workers: int = 1,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.store = store
        self.propagator = propagator
        self.auto_accept = auto_accept
        self.max_workers = max_workers
        self._locks = locks or KeyedLocks()

    def run(self) -> ReconciliationReport:
        report = ReconciliationReport(drained=self.propagator.retry_pending())
        # pairs with a deferred write still outstanding finish through the log
        deferred = self._deferred_pairs()
        for pair in deferred:
            report.failures[pair] = "deferred write still pending"
        collected = self.collect_pairs(unreadable=report.unreadable)
        pairs = [pair for pair in collected if pair not in deferred]
        report.pairs_checked = len(pairs)

        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(self._reconcile_safely, pairs))
        else:
            results = [self._reconcile_safely(pair) for pair in pairs]

        for pair, repair, error in results:
            if error is not None:
                report.failures[pair] = error
            elif repair is not None:
                report.repairs.append(repair)

        log.info(
            "Reconciliation finished: pairs=%s, repairs=%s, failures=%s, unreadable=%s, "
            "drained=%s, pending=%s",
            report.pairs_checked,
            len(report.repairs),
            len(report.failures),
            len(report.unreadable),
            len(report.drained.completed),
            len(report.drained.remaining),
        )
        return report

    def collect_pairs(
        self, user_ids: Iterable[str] | None = None, *, unreadable: dict[str, str] | None = None
    ) -> list[Pair]:
        """Every pair referenced from a readable document.

        Documents that fail to load are recorded in ``unreadable`` and skipped.
        """

        pairs: set[Pair] = set()
        for user_id in user_ids if user_ids is not None else self.store.list_ids():
            try:
                record = self.propagator.fetch(user_id)
            except DocumentNotFoundError:
                continue
            except DocumentStoreError as exc:
                log.warning("Skipping %s while collecting pairs: %s", user_id, exc)
                if unreadable is not None:
                    unreadable[user_id] = str(exc)
                continue
            pairs.update(pair_key(user_id, other) for other in record.references())
        return sorted(pairs)


    def _deferred_pairs(self) -> set[Pair]:
        propagation_log = self.propagator.propagation_log
        if propagation_log is None:
            return set()
        return {
            pair_key(pending.initiator_id, pending.target_id)
            for pending in propagation_log.pending()
        }

    def _reconcile_safely(self, pair: Pair) -> tuple[Pair, Repair | None, str | None]:
        try:
            return pair, self.reconcile_pair(*pair), None
        except DocumentStoreError as exc:
            log.warning("Could not reconcile %s<->%s: %s", pair[0], pair[1], exc)
            return pair, None, str(exc)

    def reconcile_pair(self, first_id: str, second_id: str) -> Repair | None:
        first_id, second_id = pair_key(first_id, second_id)
        with self._locks.hold((first_id, second_id)):
            if first_id == second_id:
                return self._repair_self_reference(first_id)

            first = self._fetch_or_none(first_id)
            second = self._fetch_or_none(second_id)
            if first is None and second is None:
                return None
            if first is None or second is None:
                present = first if first is not None else second
                missing_id = first_id if first is None else second_id
                return self._repair_dangling(present, missing_id)

            if edge_state(first, second) is not EdgeState.INCONSISTENT:
                return None

            target = resolve_target(first, second, auto_accept=self.auto_accept)
            first_delta, second_delta = target_deltas(first_id, second_id, target)
            self.propagator.apply_delta(first_delta)
            self.propagator.apply_delta(second_delta)

            repair = Repair(
                pair=(first_id, second_id),
                before=(first.markers_for(second_id), second.markers_for(first_id)),
                target=target,
            )
            log.info(
                "Repaired %s<->%s: %s | %s -> %s%s",
                first_id,
                second_id,
                _markers(repair.before[0]),
                _markers(repair.before[1]),
                target.rank.name.lower(),
                f" from {target.requester}" if target.requester else "",
            )
            return repair

    def _repair_self_reference(self, user_id: str) -> Repair | None:
        record = self._fetch_or_none(user_id)
        if record is None or not record.markers_for(user_id):
            return None
        delta, _ = target_deltas(user_id, user_id, EdgeTarget.unrelated())
        self.propagator.apply_delta(delta)
        markers = record.markers_for(user_id)
        log.info("Removed self reference from %s: %s", user_id, _markers(markers))
        return Repair(
            pair=(user_id, user_id),
            before=(markers, markers),
            target=EdgeTarget.unrelated(),
            note="self reference",
        )

    def _repair_dangling(self, present: UserRecord, missing_id: str) -> Repair | None:
        markers = present.markers_for(missing_id)
        if not markers:
            return None
        delta, _ = target_deltas(present.user_id, missing_id, EdgeTarget.unrelated())
        try:
            self.propagator.apply_delta(delta)
        except DocumentNotFoundError:
            return None
        log.info(
            "Removed dangling reference %s from %s: %s",
            missing_id,
            present.user_id,
            _markers(markers),
        )
        before = (
            (markers, frozenset()) if present.user_id < missing_id else (frozenset(), markers)
        )
        return Repair(
            pair=pair_key(present.user_id, missing_id),
            before=before,
            target=EdgeTarget.unrelated(),
            note=f"{missing_id} no longer exists",
        )

    def _fetch_or_none(self, user_id: str) -> UserRecord | None:
        try:
            return self.propagator.fetch(user_id)
        except DocumentNotFoundError:
            return None


def _markers(markers: frozenset[RelationshipField]) -> str:
    return ",".join(sorted(marker.value for marker in markers)) or "-"
