"""Port for the durable log of second-phase writes that still need applying."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from collections.abc import Sequence

    from betabuddy.domain.model import RecordDelta, TransitionKind


@dataclass(frozen=True, slots=True)
class PendingPropagation:
    """A delta whose target document could not be written within the retry budget."""

    kind: TransitionKind
    initiator_id: str
    delta: RecordDelta
    pending_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    last_error: str | None = None

    @property
    def target_id(self) -> str:
        return self.delta.user_id


@runtime_checkable
class PropagationLog(Protocol):
    def record(self, pending: PendingPropagation) -> None: ...

    def pending(self) -> Sequence[PendingPropagation]: ...

    def resolve(self, pending_id: UUID) -> None: ...
