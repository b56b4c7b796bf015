"""Results returned to the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from betabuddy.domain.model import OutcomeStatus

if TYPE_CHECKING:
    from uuid import UUID

    from betabuddy.domain.model import RejectionReason, TransitionKind


@dataclass(frozen=True, slots=True)
class TransitionOutcome:
    """What happened to one relationship transition.

    ``kind`` is the transition that was actually carried out, which differs from
    the requested one when a send-request is turned into an accept.
    """

    kind: TransitionKind
    self_id: str
    other_id: str
    status: OutcomeStatus
    reason: RejectionReason | None = None
    pending_id: UUID | None = None
    detail: str | None = None

    @property
    def applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED

    @property
    def acknowledged(self) -> bool:
        """Whether the UI may show the action as done.

        Partially applied transitions are acknowledged optimistically; the
        outstanding write is owned by the propagation log from here on.
        """

        return self.status in {OutcomeStatus.APPLIED, OutcomeStatus.PARTIALLY_APPLIED}


def rejected(
    kind: TransitionKind,
    self_id: str,
    other_id: str,
    reason: RejectionReason,
    *,
    detail: str | None = None,
) -> TransitionOutcome:
    return TransitionOutcome(
        kind=kind,
        self_id=self_id,
        other_id=other_id,
        status=OutcomeStatus.REJECTED,
        reason=reason,
        detail=detail,
    )


def unavailable(
    kind: TransitionKind, self_id: str, other_id: str, *, detail: str | None = None
) -> TransitionOutcome:
    return TransitionOutcome(
        kind=kind,
        self_id=self_id,
        other_id=other_id,
        status=OutcomeStatus.UNAVAILABLE,
        detail=detail,
    )
