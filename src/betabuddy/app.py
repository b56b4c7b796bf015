"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from betabuddy.adapters.firestore import FirestoreDocumentStore
from betabuddy.adapters.sqlalchemy import (
    SqlAlchemyDocumentStore,
    SqlAlchemyPropagationLog,
    configured_engine,
    is_started,
    startup,
)
from betabuddy.config import StoreBackend, get_propagation_config, get_store_backend
from betabuddy.domain.relationships import (
    ReconciliationScanner,
    RelationshipService,
    create_account,
    delete_account,
)

if TYPE_CHECKING:
    from betabuddy.config import PropagationConfig
    from betabuddy.domain.model import TransitionKind, UserRecord
    from betabuddy.domain.ports import DocumentStore, PropagationLog
    from betabuddy.domain.relationships import (
        ReconciliationReport,
        SweepReport,
        TransitionOutcome,
    )

log = getLogger(__name__)


@dataclass(slots=True)
class Runtime:
    store: DocumentStore
    propagation_log: PropagationLog
    config: PropagationConfig
    service: RelationshipService
    scanner: ReconciliationScanner

    def close(self) -> None:
        if isinstance(self.store, FirestoreDocumentStore):
            self.store.close()


def build_runtime(
    *,
    store: DocumentStore | None = None,
    propagation_log: PropagationLog | None = None,
    config: PropagationConfig | None = None,
) -> Runtime:
    """Wire the service and scanner to the configured backends.

    The propagation log always lives in the local database, whichever store
    holds the user documents.
    """

    effective_config = config or get_propagation_config()
    if store is None or propagation_log is None:
        engine = configured_engine() if is_started() else startup()
        propagation_log = propagation_log or SqlAlchemyPropagationLog(engine)
        if store is None:
            backend = get_store_backend()
            store = (
                FirestoreDocumentStore()
                if backend is StoreBackend.FIRESTORE
                else SqlAlchemyDocumentStore(engine)
            )
            log.debug("Using %s document store", backend)

    service = RelationshipService(
        store, config=effective_config, propagation_log=propagation_log
    )
    scanner = ReconciliationScanner(
        store,
        service.propagator,
        auto_accept=effective_config.auto_accept_mutual_requests,
        max_workers=effective_config.reconcile_workers,
    )
    return Runtime(
        store=store,
        propagation_log=propagation_log,
        config=effective_config,
        service=service,
        scanner=scanner,
    )


def run_transition(
    runtime: Runtime, kind: TransitionKind, self_id: str, other_id: str
) -> TransitionOutcome:
    outcome = runtime.service.perform(kind, self_id, other_id)
    log.info(
        "%s %s -> %s: %s%s",
        outcome.kind,
        self_id,
        other_id,
        outcome.status,
        f" ({outcome.reason})" if outcome.reason else "",
    )
    return outcome


def register_user(runtime: Runtime, user_id: str, *, username: str, email: str) -> UserRecord:
    return create_account(runtime.store, user_id, username=username, email=email)


def reconcile(runtime: Runtime) -> ReconciliationReport:
    log.info("Starting reconciliation scan")
    return runtime.scanner.run()


def remove_account(runtime: Runtime, user_id: str) -> SweepReport:
    return delete_account(runtime.service.propagator, user_id)
