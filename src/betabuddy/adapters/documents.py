"""Wire schema shared by every document store backend.

User documents are stored with camelCase field names and relationship fields
as plain string arrays in no particular order. These names are what existing
documents already use and must not change.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from betabuddy.domain.model import FieldChange, RecordDelta, RelationshipField, UserRecord


class UserDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId", min_length=1)
    username: str = ""
    email: str = ""
    friends: list[str] = Field(default_factory=list)
    sent_friend_requests: list[str] = Field(default_factory=list, alias="sentFriendRequests")
    received_friend_requests: list[str] = Field(
        default_factory=list, alias="receivedFriendRequests"
    )

    @field_validator("friends", "sent_friend_requests", "received_friend_requests", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return [] if value is None else value

    @classmethod
    def from_record(cls, record: UserRecord) -> UserDocument:
        return cls(
            user_id=record.user_id,
            username=record.username,
            email=record.email,
            friends=sorted(record.friends),
            sent_friend_requests=sorted(record.sent_friend_requests),
            received_friend_requests=sorted(record.received_friend_requests),
        )

    def to_record(self, *, revision: str | None) -> UserRecord:
        return UserRecord(
            user_id=self.user_id,
            username=self.username,
            email=self.email,
            friends=frozenset(self.friends),
            sent_friend_requests=frozenset(self.sent_friend_requests),
            received_friend_requests=frozenset(self.received_friend_requests),
            revision=revision,
        )


class FieldChangePayload(BaseModel):
    field: RelationshipField
    value: str
    present: bool


class RecordDeltaPayload(BaseModel):
    """JSON form of a :class:`RecordDelta` kept in the propagation log."""

    user_id: str
    changes: list[FieldChangePayload]

    @classmethod
    def from_delta(cls, delta: RecordDelta) -> RecordDeltaPayload:
        return cls(
            user_id=delta.user_id,
            changes=[
                FieldChangePayload(field=change.field, value=change.value, present=change.present)
                for change in delta.changes
            ],
        )

    def to_delta(self) -> RecordDelta:
        return RecordDelta(
            user_id=self.user_id,
            changes=tuple(
                FieldChange(change.field, change.value, change.present)
                for change in self.changes
            ),
        )
