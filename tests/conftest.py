from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from betabuddy.adapters.memory import InMemoryDocumentStore, InMemoryPropagationLog
from betabuddy.adapters.sqlalchemy import shutdown, startup
from betabuddy.config import PropagationConfig
from betabuddy.domain.relationships import (
    ReconciliationScanner,
    RelationshipService,
    TwoPhasePropagator,
)
from tests.helpers.config import FAST_RETRY
from tests.helpers.users import seeded_store

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def fast_config() -> PropagationConfig:
    return PropagationConfig(retry=FAST_RETRY)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return seeded_store("alice", "bob", "carol")


@pytest.fixture
def propagation_log() -> InMemoryPropagationLog:
    return InMemoryPropagationLog()


@pytest.fixture
def service(
    store: InMemoryDocumentStore,
    propagation_log: InMemoryPropagationLog,
    fast_config: PropagationConfig,
) -> RelationshipService:
    return RelationshipService(store, config=fast_config, propagation_log=propagation_log)


@pytest.fixture
def scanner(service: RelationshipService) -> ReconciliationScanner:
    return ReconciliationScanner(service.store, service.propagator)


@pytest.fixture
def propagator(
    store: InMemoryDocumentStore, propagation_log: InMemoryPropagationLog
) -> TwoPhasePropagator:
    return TwoPhasePropagator(
        store, retry=FAST_RETRY, propagation_log=propagation_log, sleep=lambda _: None
    )


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    shutdown()
    startup(engine=engine, force=True)
    try:
        yield engine
    finally:
        shutdown()
