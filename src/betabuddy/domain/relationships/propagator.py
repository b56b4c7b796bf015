"""Two-phase propagation of relationship transitions.

A transition touches two user documents and the store offers no way to write
both atomically. The propagator writes the initiator's document first and the
counterpart's second. Every write re-reads the target, re-applies the same
idempotent delta and is guarded by the revision it read, so a write can be
retried any number of times.

If the second write still fails after the retry budget, the delta goes to the
propagation log and the caller gets ``PARTIALLY_APPLIED``. The reconciliation
scanner drains that log later via :meth:`TwoPhasePropagator.retry_pending`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from betabuddy.config.propagation import RetryPolicy
from betabuddy.domain.model import OutcomeStatus, RejectionReason
from betabuddy.domain.ports import (
    DocumentNotFoundError,
    DocumentStoreError,
    PendingPropagation,
    StoreUnavailableError,
    WriteConflictError,
)

from .outcomes import TransitionOutcome, rejected, unavailable

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from betabuddy.domain.model import RecordDelta, UserRecord
    from betabuddy.domain.ports import DocumentStore, PropagationLog

    from .state_machine import TransitionPlan

log = logging.getLogger(__name__)

_RETRYABLE = (StoreUnavailableError, WriteConflictError)


@dataclass(slots=True)
class DrainReport:
    """Result of replaying the propagation log."""

    completed: list[UUID] = field(default_factory=list)
    dropped: list[UUID] = field(default_factory=list)
    remaining: list[UUID] = field(default_factory=list)


class TwoPhasePropagator:
    def __init__(
        self,
        store: DocumentStore,
        *,
        retry: RetryPolicy | None = None,
        propagation_log: PropagationLog | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.retry = retry or RetryPolicy()
        self.propagation_log = propagation_log
        self._sleep = sleep

    def _retrying(self, *exceptions: type[BaseException]) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(exceptions),
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential(multiplier=self.retry.initial_wait, max=self.retry.max_wait)
            + wait_random(0, self.retry.jitter),
            before_sleep=before_sleep_log(log, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

    def fetch(self, user_id: str) -> UserRecord:
        """Fetch a document, retrying transient failures."""

        return self._retrying(StoreUnavailableError)(self.store.fetch, user_id)

    def apply_delta(self, delta: RecordDelta) -> UserRecord:
        """Bring one document in line with ``delta``.

        Only unavailable stores and write conflicts are retried. Any other
        :class:`DocumentStoreError` is raised immediately, and the last
        transient error once the retry budget is spent.
        """

        return self._retrying(*_RETRYABLE)(self._apply_once, delta)

    def _apply_once(self, delta: RecordDelta) -> UserRecord:
        record = self.store.fetch(delta.user_id)
        changed = delta.apply_to(record)
        if not changed:
            return record
        revision = self.store.update_fields(
            delta.user_id, changed, expected_revision=record.revision
        )
        return record.with_fields(changed, revision=revision)

    def propagate(self, plan: TransitionPlan) -> TransitionOutcome:
        kind = plan.kind
        self_id = plan.initiator_id
        other_id = plan.counterpart_id

        try:
            self.apply_delta(plan.initiator)
        except DocumentNotFoundError:
            return rejected(kind, self_id, other_id, RejectionReason.PARTY_GONE)
        except DocumentStoreError as exc:
            # nothing was written, so the caller can simply try again later
            log.warning("%s %s->%s not started, store failed: %s", kind, self_id, other_id, exc)
            return unavailable(kind, self_id, other_id, detail=str(exc))

        try:
            self.apply_delta(plan.counterpart)
        except DocumentNotFoundError:
            # the account sweep or the scanner removes the dangling reference
            log.warning(
                "%s %s->%s: counterpart disappeared after the first write", kind, self_id, other_id
            )
            return rejected(kind, self_id, other_id, RejectionReason.PARTY_GONE)
        except DocumentStoreError as exc:
            pending = PendingPropagation(
                kind=kind,
                initiator_id=self_id,
                delta=plan.counterpart,
                last_error=str(exc),
            )
            self._defer(pending)
            return TransitionOutcome(
                kind=kind,
                self_id=self_id,
                other_id=other_id,
                status=OutcomeStatus.PARTIALLY_APPLIED,
                pending_id=pending.pending_id,
                detail=str(exc),
            )

        log.debug("%s %s->%s applied", kind, self_id, other_id)
        return TransitionOutcome(
            kind=kind, self_id=self_id, other_id=other_id, status=OutcomeStatus.APPLIED
        )

    def _defer(self, pending: PendingPropagation) -> None:
        if self.propagation_log is None:
            log.error(
                "%s %s->%s partially applied and no propagation log is configured; "
                "only a reconciliation scan can repair %s",
                pending.kind,
                pending.initiator_id,
                pending.target_id,
                pending.target_id,
            )
            return
        self.propagation_log.record(pending)
        log.warning(
            "%s %s->%s partially applied, second write deferred as %s",
            pending.kind,
            pending.initiator_id,
            pending.target_id,
            pending.pending_id,
        )

    def retry_pending(self) -> DrainReport:
        """Replay every deferred second-phase write once (with the normal retry budget)."""

        report = DrainReport()
        if self.propagation_log is None:
            return report

        for pending in self.propagation_log.pending():
            try:
                self.apply_delta(pending.delta)
            except DocumentNotFoundError:
                log.info(
                    "Dropping deferred %s for %s: document no longer exists",
                    pending.kind,
                    pending.target_id,
                )
                self.propagation_log.resolve(pending.pending_id)
                report.dropped.append(pending.pending_id)
            except DocumentStoreError as exc:
                log.warning(
                    "Deferred %s for %s still failing: %s", pending.kind, pending.target_id, exc
                )
                report.remaining.append(pending.pending_id)
            else:
                self.propagation_log.resolve(pending.pending_id)
                report.completed.append(pending.pending_id)
        return report
