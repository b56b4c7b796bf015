"""Durable propagation log stored next to the local database."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import DBAPIError

from betabuddy.adapters.documents import RecordDeltaPayload
from betabuddy.domain.model import TransitionKind
from betabuddy.domain.ports import PendingPropagation, StoreUnavailableError

from .mappings import pending_propagation_table

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.engine import Engine

_table = pending_propagation_table


class SqlAlchemyPropagationLog:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def record(self, pending: PendingPropagation) -> None:
        stmt = insert(_table).values(
            pending_id=pending.pending_id,
            kind=pending.kind.value,
            initiator_id=pending.initiator_id,
            target_id=pending.target_id,
            delta=RecordDeltaPayload.from_delta(pending.delta).model_dump(mode="json"),
            created_at=pending.created_at,
            last_error=pending.last_error,
        )
        try:
            with self.engine.begin() as connection:
                connection.execute(stmt)
        except DBAPIError as exc:
            raise StoreUnavailableError(str(exc), user_id=pending.target_id) from exc

    def pending(self) -> Sequence[PendingPropagation]:
        stmt = select(_table).order_by(_table.c.created_at)
        try:
            with self.engine.connect() as connection:
                rows = connection.execute(stmt).all()
        except DBAPIError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        return [
            PendingPropagation(
                kind=TransitionKind(row.kind),
                initiator_id=row.initiator_id,
                delta=RecordDeltaPayload.model_validate(row.delta).to_delta(),
                pending_id=row.pending_id,
                created_at=row.created_at,
                last_error=row.last_error,
            )
            for row in rows
        ]

    def resolve(self, pending_id: UUID) -> None:
        try:
            with self.engine.begin() as connection:
                connection.execute(delete(_table).where(_table.c.pending_id == pending_id))
        except DBAPIError as exc:
            raise StoreUnavailableError(str(exc)) from exc
