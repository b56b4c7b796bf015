from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from betabuddy.adapters.firestore import FirestoreDocumentStore
from betabuddy.adapters.sqlalchemy import SqlAlchemyDocumentStore, SqlAlchemyPropagationLog
from betabuddy.app import build_runtime, reconcile, register_user, remove_account, run_transition
from betabuddy.config import PropagationConfig
from betabuddy.domain.model import OutcomeStatus, TransitionKind
from tests.helpers.config import FAST_RETRY

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


@pytest.fixture
def fast_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BETABUDDY_RETRY_ATTEMPTS", "2")
    monkeypatch.delenv("BETABUDDY_STORE", raising=False)


@pytest.mark.usefixtures("fast_env")
def test_build_runtime_defaults_to_local_database(sqlite_engine: Engine) -> None:
    runtime = build_runtime()

    assert isinstance(runtime.store, SqlAlchemyDocumentStore)
    assert isinstance(runtime.propagation_log, SqlAlchemyPropagationLog)
    assert runtime.store.engine is sqlite_engine
    assert runtime.config.retry.max_attempts == 2
    assert runtime.scanner.propagator is runtime.service.propagator


@pytest.mark.usefixtures("fast_env", "sqlite_engine")
def test_build_runtime_selects_firestore(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BETABUDDY_STORE", "firestore")
    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "demo")

    runtime = build_runtime()

    assert isinstance(runtime.store, FirestoreDocumentStore)
    assert isinstance(runtime.propagation_log, SqlAlchemyPropagationLog)


def test_application_flow(sqlite_engine: Engine) -> None:
    runtime = build_runtime(
        store=SqlAlchemyDocumentStore(sqlite_engine),
        propagation_log=SqlAlchemyPropagationLog(sqlite_engine),
        config=PropagationConfig(retry=FAST_RETRY),
    )
    for user_id in ("alice", "bob"):
        register_user(runtime, user_id, username=user_id.title(), email="")

    sent = run_transition(runtime, TransitionKind.SEND_REQUEST, "alice", "bob")
    accepted = run_transition(runtime, TransitionKind.ACCEPT, "bob", "alice")
    report = reconcile(runtime)
    sweep = remove_account(runtime, "bob")

    assert sent.status is OutcomeStatus.APPLIED
    assert accepted.status is OutcomeStatus.APPLIED
    assert report.clean
    assert sweep.cleaned == ["alice"]
    assert runtime.store.fetch("alice").friends == frozenset()
