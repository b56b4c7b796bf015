"""In-process document store and propagation log."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from betabuddy.domain.model import UserRecord
from betabuddy.domain.ports import (
    DocumentExistsError,
    DocumentNotFoundError,
    PendingPropagation,
    WriteConflictError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

    from betabuddy.domain.model import RelationshipField


class InMemoryDocumentStore:
    """Thread-safe store with the same single-document guarantees as the real backends."""

    def __init__(self, records: Iterable[UserRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, UserRecord] = {}
        self._counter = 0
        for record in records:
            self.create(record)

    def _next_revision(self) -> str:
        self._counter += 1
        return str(self._counter)

    def fetch(self, user_id: str) -> UserRecord:
        with self._lock:
            try:
                return self._records[user_id]
            except KeyError:
                raise DocumentNotFoundError(
                    f"User document {user_id!r} not found", user_id=user_id
                ) from None

    def update_fields(
        self,
        user_id: str,
        fields: Mapping[RelationshipField, Iterable[str]],
        *,
        expected_revision: str | None = None,
    ) -> str:
        with self._lock:
            current = self._records.get(user_id)
            if current is None:
                raise DocumentNotFoundError(f"User document {user_id!r} not found", user_id=user_id)
            if expected_revision is not None and current.revision != expected_revision:
                raise WriteConflictError(
                    f"User document {user_id!r} changed since revision {expected_revision}",
                    user_id=user_id,
                )
            revision = self._next_revision()
            self._records[user_id] = current.with_fields(fields, revision=revision)
            return revision

    def create(self, record: UserRecord) -> UserRecord:
        with self._lock:
            if record.user_id in self._records:
                raise DocumentExistsError(
                    f"User document {record.user_id!r} already exists", user_id=record.user_id
                )
            stored = record.with_fields({}, revision=self._next_revision())
            self._records[record.user_id] = stored
            return stored

    def delete(self, user_id: str) -> None:
        with self._lock:
            if self._records.pop(user_id, None) is None:
                raise DocumentNotFoundError(f"User document {user_id!r} not found", user_id=user_id)

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)


class InMemoryPropagationLog:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[UUID, PendingPropagation] = {}

    def record(self, pending: PendingPropagation) -> None:
        with self._lock:
            self._entries[pending.pending_id] = pending

    def pending(self) -> Sequence[PendingPropagation]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda entry: entry.created_at)

    def resolve(self, pending_id: UUID) -> None:
        with self._lock:
            self._entries.pop(pending_id, None)
