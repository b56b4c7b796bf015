"""Document store backed by a relational table with optimistic revisions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from betabuddy.adapters.documents import UserDocument
from betabuddy.domain.ports import (
    DocumentExistsError,
    DocumentNotFoundError,
    StoreUnavailableError,
    WriteConflictError,
)

from .mappings import COLUMN_BY_FIELD, user_document_table

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy import Row
    from sqlalchemy.engine import Engine

    from betabuddy.domain.model import RelationshipField, UserRecord

log = logging.getLogger(__name__)

_table = user_document_table


def _row_to_record(row: Row[tuple[object, ...]]) -> UserRecord:
    document = UserDocument.model_validate(
        {
            "userId": row.user_id,
            "username": row.username,
            "email": row.email,
            "friends": row.friends,
            "sentFriendRequests": row.sent_friend_requests,
            "receivedFriendRequests": row.received_friend_requests,
        }
    )
    return document.to_record(revision=str(row.revision))


def _not_found(user_id: str) -> DocumentNotFoundError:
    return DocumentNotFoundError(f"User document {user_id!r} not found", user_id=user_id)


class SqlAlchemyDocumentStore:
    """Each call runs in its own short transaction touching exactly one row."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def fetch(self, user_id: str) -> UserRecord:
        stmt = select(_table).where(_table.c.user_id == user_id)
        try:
            with self.engine.connect() as connection:
                row = connection.execute(stmt).one_or_none()
        except (OperationalError, DBAPIError) as exc:
            raise StoreUnavailableError(str(exc), user_id=user_id) from exc
        if row is None:
            raise _not_found(user_id)
        return _row_to_record(row)

    def update_fields(
        self,
        user_id: str,
        fields: Mapping[RelationshipField, Iterable[str]],
        *,
        expected_revision: str | None = None,
    ) -> str:
        values: dict[str, object] = {
            COLUMN_BY_FIELD[name]: sorted(set(ids)) for name, ids in fields.items()
        }
        values["revision"] = _table.c.revision + 1
        values["updated_at"] = datetime.now(tz=UTC)

        stmt = update(_table).where(_table.c.user_id == user_id)
        if expected_revision is not None:
            stmt = stmt.where(_table.c.revision == int(expected_revision))
        stmt = stmt.values(**values)

        try:
            with self.engine.begin() as connection:
                result = connection.execute(stmt)
                if result.rowcount == 0:
                    exists = connection.execute(
                        select(_table.c.revision).where(_table.c.user_id == user_id)
                    ).scalar_one_or_none()
                    if exists is None:
                        raise _not_found(user_id)
                    raise WriteConflictError(
                        f"User document {user_id!r} changed since revision {expected_revision}",
                        user_id=user_id,
                    )
                revision = connection.execute(
                    select(_table.c.revision).where(_table.c.user_id == user_id)
                ).scalar_one()
        except (OperationalError, DBAPIError) as exc:
            raise StoreUnavailableError(str(exc), user_id=user_id) from exc
        return str(revision)

    def create(self, record: UserRecord) -> UserRecord:
        document = UserDocument.from_record(record)
        stmt = insert(_table).values(
            user_id=document.user_id,
            username=document.username,
            email=document.email,
            friends=document.friends,
            sent_friend_requests=document.sent_friend_requests,
            received_friend_requests=document.received_friend_requests,
            revision=1,
            updated_at=datetime.now(tz=UTC),
        )
        try:
            with self.engine.begin() as connection:
                connection.execute(stmt)
        except IntegrityError as exc:
            raise DocumentExistsError(
                f"User document {record.user_id!r} already exists", user_id=record.user_id
            ) from exc
        except (OperationalError, DBAPIError) as exc:
            raise StoreUnavailableError(str(exc), user_id=record.user_id) from exc
        return document.to_record(revision="1")

    def delete(self, user_id: str) -> None:
        try:
            with self.engine.begin() as connection:
                result = connection.execute(delete(_table).where(_table.c.user_id == user_id))
        except (OperationalError, DBAPIError) as exc:
            raise StoreUnavailableError(str(exc), user_id=user_id) from exc
        if result.rowcount == 0:
            raise _not_found(user_id)

    def list_ids(self) -> list[str]:
        try:
            with self.engine.connect() as connection:
                stmt = select(_table.c.user_id).order_by(_table.c.user_id)
                return list(connection.execute(stmt).scalars())
        except (OperationalError, DBAPIError) as exc:
            raise StoreUnavailableError(str(exc)) from exc
