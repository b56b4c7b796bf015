"""User documents as seen by the relationship engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from betabuddy.domain.model.enums import RelationshipField

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True, slots=True, kw_only=True)
class UserRecord:
    """Snapshot of one user document.

    ``revision`` is an opaque token issued by the document store; it changes on
    every write and is handed back as a write precondition.
    """

    user_id: str
    username: str = ""
    email: str = ""
    friends: frozenset[str] = field(default_factory=frozenset)
    sent_friend_requests: frozenset[str] = field(default_factory=frozenset)
    received_friend_requests: frozenset[str] = field(default_factory=frozenset)
    revision: str | None = None

    def relationship_set(self, name: RelationshipField) -> frozenset[str]:
        match name:
            case RelationshipField.FRIENDS:
                return self.friends
            case RelationshipField.SENT_REQUESTS:
                return self.sent_friend_requests
            case RelationshipField.RECEIVED_REQUESTS:
                return self.received_friend_requests

    def relationship_fields(self) -> dict[RelationshipField, frozenset[str]]:
        return {name: self.relationship_set(name) for name in RelationshipField}

    def markers_for(self, other_id: str) -> frozenset[RelationshipField]:
        """Return the relationship fields of this record that reference ``other_id``."""

        return frozenset(
            name for name in RelationshipField if other_id in self.relationship_set(name)
        )

    def references(self) -> frozenset[str]:
        return self.friends | self.sent_friend_requests | self.received_friend_requests

    def with_fields(
        self,
        fields: Mapping[RelationshipField, Iterable[str]],
        *,
        revision: str | None,
    ) -> UserRecord:
        changes: dict[str, object] = {"revision": revision}
        for name, values in fields.items():
            changes[_ATTRIBUTE_BY_FIELD[name]] = frozenset(values)
        return replace(self, **changes)


_ATTRIBUTE_BY_FIELD: dict[RelationshipField, str] = {
    RelationshipField.FRIENDS: "friends",
    RelationshipField.SENT_REQUESTS: "sent_friend_requests",
    RelationshipField.RECEIVED_REQUESTS: "received_friend_requests",
}
