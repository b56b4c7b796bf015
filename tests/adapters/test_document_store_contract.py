"""Behaviour every document store backend must share."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from betabuddy.adapters.memory import InMemoryDocumentStore
from betabuddy.adapters.sqlalchemy import SqlAlchemyDocumentStore
from betabuddy.domain.model import RelationshipField
from betabuddy.domain.ports import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    WriteConflictError,
)
from tests.helpers.users import make_user

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


@pytest.fixture(params=["memory", "sqlalchemy"])
def document_store(request: pytest.FixtureRequest) -> DocumentStore:
    if request.param == "memory":
        return InMemoryDocumentStore()
    engine: Engine = request.getfixturevalue("sqlite_engine")
    return SqlAlchemyDocumentStore(engine)


def test_store_satisfies_protocol(document_store: DocumentStore) -> None:
    assert isinstance(document_store, DocumentStore)


def test_create_and_fetch(document_store: DocumentStore) -> None:
    created = document_store.create(make_user("alice", friends={"bob"}))

    fetched = document_store.fetch("alice")

    assert created.revision is not None
    assert fetched.revision == created.revision
    assert fetched.friends == frozenset({"bob"})
    assert fetched.username == "Alice"
    assert fetched.email == "alice@example.com"


def test_create_refuses_duplicates(document_store: DocumentStore) -> None:
    document_store.create(make_user("alice"))

    with pytest.raises(DocumentExistsError):
        document_store.create(make_user("alice"))


def test_fetch_missing(document_store: DocumentStore) -> None:
    with pytest.raises(DocumentNotFoundError) as excinfo:
        document_store.fetch("ghost")

    assert excinfo.value.user_id == "ghost"


def test_update_with_current_revision(document_store: DocumentStore) -> None:
    created = document_store.create(make_user("alice", friends={"carol"}))

    revision = document_store.update_fields(
        "alice",
        {RelationshipField.SENT_REQUESTS: ["bob"]},
        expected_revision=created.revision,
    )

    fetched = document_store.fetch("alice")
    assert revision != created.revision
    assert fetched.revision == revision
    assert fetched.sent_friend_requests == frozenset({"bob"})
    assert fetched.friends == frozenset({"carol"})


def test_update_with_stale_revision_conflicts(document_store: DocumentStore) -> None:
    created = document_store.create(make_user("alice"))
    document_store.update_fields("alice", {RelationshipField.FRIENDS: ["bob"]})

    with pytest.raises(WriteConflictError):
        document_store.update_fields(
            "alice",
            {RelationshipField.FRIENDS: []},
            expected_revision=created.revision,
        )

    assert document_store.fetch("alice").friends == frozenset({"bob"})


def test_update_missing_document(document_store: DocumentStore) -> None:
    with pytest.raises(DocumentNotFoundError):
        document_store.update_fields("ghost", {RelationshipField.FRIENDS: ["alice"]})


def test_delete(document_store: DocumentStore) -> None:
    document_store.create(make_user("alice"))

    document_store.delete("alice")

    with pytest.raises(DocumentNotFoundError):
        document_store.fetch("alice")
    with pytest.raises(DocumentNotFoundError):
        document_store.delete("alice")


def test_list_ids_sorted(document_store: DocumentStore) -> None:
    for user_id in ("carol", "alice", "bob"):
        document_store.create(make_user(user_id))

    assert document_store.list_ids() == ["alice", "bob", "carol"]
