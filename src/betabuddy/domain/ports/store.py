"""Port for the document store holding user records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from betabuddy.domain.model import RelationshipField, UserRecord


class DocumentStoreError(RuntimeError):
    """Base class for document store failures."""

    def __init__(self, message: str, *, user_id: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id


class DocumentNotFoundError(DocumentStoreError):
    """Raised when the addressed user document does not exist."""


class DocumentExistsError(DocumentStoreError):
    """Raised when creating a user document whose id is already taken."""


class WriteConflictError(DocumentStoreError):
    """Raised when a write's revision precondition no longer matches the stored document."""


class StoreUnavailableError(DocumentStoreError):
    """Raised for transient failures (timeouts, connectivity, throttling)."""


@runtime_checkable
class DocumentStore(Protocol):
    """Single-document atomic access to user records.

    No operation spans more than one document. ``update_fields`` replaces every
    listed field in one atomic step and, when ``expected_revision`` is given,
    only if the stored revision still matches.
    """

    def fetch(self, user_id: str) -> UserRecord: ...

    def update_fields(
        self,
        user_id: str,
        fields: Mapping[RelationshipField, Iterable[str]],
        *,
        expected_revision: str | None = None,
    ) -> str: ...

    def create(self, record: UserRecord) -> UserRecord: ...

    def delete(self, user_id: str) -> None: ...

    def list_ids(self) -> list[str]: ...
