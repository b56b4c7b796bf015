"""Account lifecycle hooks owned by the identity collaborator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from betabuddy.domain.model import UserRecord
from betabuddy.domain.ports import DocumentNotFoundError, DocumentStoreError

from .state_machine import EdgeTarget, target_deltas

if TYPE_CHECKING:
    from betabuddy.domain.ports import DocumentStore

    from .propagator import TwoPhasePropagator

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    deleted_id: str
    cleaned: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed


def create_account(store: DocumentStore, user_id: str, *, username: str, email: str) -> UserRecord:
    """Create a user document with empty relationship fields."""

    record = store.create(UserRecord(user_id=user_id, username=username, email=email))
    log.info("Created account %s (%s)", user_id, username)
    return record


def sweep_deleted_account(propagator: TwoPhasePropagator, deleted_id: str) -> SweepReport:
    """Remove ``deleted_id`` from the relationship fields of every other document.

    Each cleanup is an independent single-document write; a failed one is
    reported and can be retried by sweeping again.
    """

    report = SweepReport(deleted_id=deleted_id)
    for user_id in propagator.store.list_ids():
        if user_id == deleted_id:
            continue
        try:
            record = propagator.fetch(user_id)
        except DocumentNotFoundError:
            continue
        except DocumentStoreError as exc:
            report.failed[user_id] = str(exc)
            continue
        if deleted_id not in record.references():
            continue

        delta, _ = target_deltas(user_id, deleted_id, EdgeTarget.unrelated())
        try:
            propagator.apply_delta(delta)
        except DocumentNotFoundError:
            continue
        except DocumentStoreError as exc:
            log.warning("Could not remove %s from %s: %s", deleted_id, user_id, exc)
            report.failed[user_id] = str(exc)
        else:
            report.cleaned.append(user_id)

    log.info(
        "Swept deleted account %s: cleaned=%s, failed=%s",
        deleted_id,
        len(report.cleaned),
        len(report.failed),
    )
    return report


def delete_account(propagator: TwoPhasePropagator, user_id: str) -> SweepReport:
    """Delete a user document, then sweep every reference to it."""

    try:
        propagator.store.delete(user_id)
    except DocumentNotFoundError:
        log.info("Account %s already deleted; sweeping references only", user_id)
    return sweep_deleted_account(propagator, user_id)
