"""SQLAlchemy table metadata for user documents and the propagation log."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
)

from betabuddy.domain.model import RelationshipField

metadata = MetaData()


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


user_document_table = Table(
    "user_documents",
    metadata,
    Column("user_id", String(128), primary_key=True),
    Column("username", String(255), nullable=False, default=""),
    Column("email", String(320), nullable=False, default=""),
    Column("friends", JSON, nullable=False, default=list),
    Column("sent_friend_requests", JSON, nullable=False, default=list),
    Column("received_friend_requests", JSON, nullable=False, default=list),
    Column("revision", Integer, nullable=False, default=1),
    Column("updated_at", UTCDateTime(), nullable=False),
)

pending_propagation_table = Table(
    "pending_propagations",
    metadata,
    Column("pending_id", Uuid(), primary_key=True),
    Column("kind", String(32), nullable=False),
    Column("initiator_id", String(128), nullable=False),
    Column("target_id", String(128), nullable=False, index=True),
    Column("delta", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("last_error", Text, nullable=True),
)

COLUMN_BY_FIELD: Final[dict[RelationshipField, str]] = {
    RelationshipField.FRIENDS: "friends",
    RelationshipField.SENT_REQUESTS: "sent_friend_requests",
    RelationshipField.RECEIVED_REQUESTS: "received_friend_requests",
}
