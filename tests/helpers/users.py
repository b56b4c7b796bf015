"""Factories and invariant checks for relationship tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from betabuddy.adapters.memory import InMemoryDocumentStore
from betabuddy.domain.model import EdgeState, UserRecord
from betabuddy.domain.relationships import edge_state

if TYPE_CHECKING:
    from collections.abc import Iterable

    from betabuddy.domain.ports import DocumentStore


def make_user(
    user_id: str,
    *,
    friends: Iterable[str] = (),
    sent: Iterable[str] = (),
    received: Iterable[str] = (),
    revision: str | None = None,
) -> UserRecord:
    return UserRecord(
        user_id=user_id,
        username=user_id.title(),
        email=f"{user_id}@example.com",
        friends=frozenset(friends),
        sent_friend_requests=frozenset(sent),
        received_friend_requests=frozenset(received),
        revision=revision,
    )


def seeded_store(*records: UserRecord | str) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        record if isinstance(record, UserRecord) else make_user(record) for record in records
    )


def relationship_violations(store: DocumentStore) -> list[str]:
    """Describe every broken symmetry, exclusivity, self or dangling reference."""

    records = {user_id: store.fetch(user_id) for user_id in store.list_ids()}
    violations: list[str] = []
    for record in records.values():
        for other_id in sorted(record.references()):
            other = records.get(other_id)
            if other_id == record.user_id:
                violations.append(f"{record.user_id} references itself")
            elif other is None:
                violations.append(f"{record.user_id} references missing {other_id}")
            elif edge_state(record, other) is EdgeState.INCONSISTENT:
                violations.append(f"{record.user_id} -> {other_id} inconsistent")
    return violations


def relationship_fields(store: DocumentStore, user_id: str) -> tuple[set[str], set[str], set[str]]:
    record = store.fetch(user_id)
    return (
        set(record.friends),
        set(record.sent_friend_requests),
        set(record.received_friend_requests),
    )
