"""Pure relationship transitions over two user snapshots.

Nothing in this module touches the store. Each transition turns the two
parties' current records into a pair of :class:`RecordDelta` values, the
initiator's first, or into a :class:`Rejected` explaining why the transition
does not apply.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from betabuddy.domain.model import (
    EdgeState,
    LifecycleRank,
    RecordDelta,
    RejectionReason,
    RelationshipField,
    TransitionKind,
)

if TYPE_CHECKING:
    from betabuddy.domain.model import UserRecord

FRIENDS = RelationshipField.FRIENDS
SENT = RelationshipField.SENT_REQUESTS
RECEIVED = RelationshipField.RECEIVED_REQUESTS

MIRROR: dict[RelationshipField, RelationshipField] = {
    FRIENDS: FRIENDS,
    SENT: RECEIVED,
    RECEIVED: SENT,
}

_STATE_BY_MARKER: dict[RelationshipField, EdgeState] = {
    FRIENDS: EdgeState.FRIENDS,
    SENT: EdgeState.REQUEST_OUTGOING,
    RECEIVED: EdgeState.REQUEST_INCOMING,
}


@dataclass(frozen=True, slots=True)
class TransitionPlan:
    kind: TransitionKind
    initiator: RecordDelta
    counterpart: RecordDelta

    @property
    def initiator_id(self) -> str:
        return self.initiator.user_id

    @property
    def counterpart_id(self) -> str:
        return self.counterpart.user_id


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: RejectionReason
    detail: str = ""


@dataclass(frozen=True, slots=True)
class EdgeTarget:
    """Consistent edge state to converge a pair of records to."""

    rank: LifecycleRank
    requester: str | None = None

    @classmethod
    def unrelated(cls) -> EdgeTarget:
        return cls(LifecycleRank.UNRELATED)

    @classmethod
    def friends(cls) -> EdgeTarget:
        return cls(LifecycleRank.FRIENDS)

    @classmethod
    def request_from(cls, requester: str) -> EdgeTarget:
        return cls(LifecycleRank.REQUEST, requester=requester)


def pair_key(first: str, second: str) -> tuple[str, str]:
    return (first, second) if first <= second else (second, first)


def edge_state(
    record: UserRecord, other: UserRecord | None, *, other_id: str | None = None
) -> EdgeState:
    """Derive the edge from ``record``'s point of view.

    ``other`` may be ``None`` when the counterpart document does not exist, in
    which case ``other_id`` names it.
    """

    counterpart_id = other.user_id if other is not None else other_id
    if counterpart_id is None:
        raise ValueError("edge_state needs either the other record or its id")

    mine = record.markers_for(counterpart_id)
    if counterpart_id == record.user_id:
        return EdgeState.INCONSISTENT if mine else EdgeState.UNRELATED
    theirs = other.markers_for(record.user_id) if other is not None else frozenset()

    if len(mine) > 1 or len(theirs) > 1:
        return EdgeState.INCONSISTENT
    if frozenset(MIRROR[marker] for marker in mine) != theirs:
        return EdgeState.INCONSISTENT
    if not mine:
        return EdgeState.UNRELATED
    (marker,) = mine
    return _STATE_BY_MARKER[marker]


def transition(
    kind: TransitionKind, initiator: UserRecord, counterpart: UserRecord
) -> TransitionPlan | Rejected:
    a_id = initiator.user_id
    b_id = counterpart.user_id
    if a_id == b_id:
        return Rejected(RejectionReason.SELF_REFERENCE, "a user cannot relate to themselves")

    mine = initiator.markers_for(b_id)

    match kind:
        case TransitionKind.SEND_REQUEST:
            if mine:
                return Rejected(RejectionReason.ALREADY_RELATED, _describe(mine))
            theirs = counterpart.markers_for(a_id)
            if FRIENDS in theirs or SENT in theirs:
                # the counterpart still holds an unfinished write for this edge
                return Rejected(
                    RejectionReason.ALREADY_RELATED, "counterpart still references the sender"
                )
            return TransitionPlan(
                kind,
                initiator=RecordDelta.of(a_id, add=((SENT, b_id),)),
                counterpart=RecordDelta.of(b_id, add=((RECEIVED, a_id),)),
            )
        case TransitionKind.ACCEPT:
            if RECEIVED not in mine:
                return Rejected(RejectionReason.NOT_IN_REQUESTED_STATE, "no incoming request")
            return TransitionPlan(
                kind,
                initiator=RecordDelta.of(
                    a_id, remove=((RECEIVED, b_id), (SENT, b_id)), add=((FRIENDS, b_id),)
                ),
                counterpart=RecordDelta.of(
                    b_id, remove=((SENT, a_id), (RECEIVED, a_id)), add=((FRIENDS, a_id),)
                ),
            )
        case TransitionKind.REJECT:
            if RECEIVED not in mine:
                return Rejected(RejectionReason.NOT_IN_REQUESTED_STATE, "no incoming request")
            return TransitionPlan(
                kind,
                initiator=RecordDelta.of(a_id, remove=((RECEIVED, b_id),)),
                counterpart=RecordDelta.of(b_id, remove=((SENT, a_id),)),
            )
        case TransitionKind.CANCEL:
            if SENT not in mine:
                return Rejected(RejectionReason.NOT_IN_REQUESTED_STATE, "no outgoing request")
            return TransitionPlan(
                kind,
                initiator=RecordDelta.of(a_id, remove=((SENT, b_id),)),
                counterpart=RecordDelta.of(b_id, remove=((RECEIVED, a_id),)),
            )
        case TransitionKind.UNFRIEND:
            if FRIENDS not in mine:
                return Rejected(RejectionReason.NOT_IN_REQUESTED_STATE, "not friends")
            return TransitionPlan(
                kind,
                initiator=RecordDelta.of(a_id, remove=((FRIENDS, b_id),)),
                counterpart=RecordDelta.of(b_id, remove=((FRIENDS, a_id),)),
            )


def has_crossing_requests(record: UserRecord, other_id: str) -> bool:
    """Both parties asked each other; only reachable through a race."""

    markers = record.markers_for(other_id)
    return SENT in markers and RECEIVED in markers


def resolve_target(first: UserRecord, second: UserRecord, *, auto_accept: bool) -> EdgeTarget:
    """Pick the consistent state furthest along the lifecycle that either record claims."""

    a_id, b_id = first.user_id, second.user_id
    a_markers = first.markers_for(b_id)
    b_markers = second.markers_for(a_id)

    if FRIENDS in a_markers or FRIENDS in b_markers:
        return EdgeTarget.friends()

    a_requested = SENT in a_markers or RECEIVED in b_markers
    b_requested = SENT in b_markers or RECEIVED in a_markers
    if a_requested and b_requested:
        if auto_accept:
            return EdgeTarget.friends()
        return EdgeTarget.request_from(min(a_id, b_id))
    if a_requested:
        return EdgeTarget.request_from(a_id)
    if b_requested:
        return EdgeTarget.request_from(b_id)
    return EdgeTarget.unrelated()


def target_deltas(
    first_id: str, second_id: str, target: EdgeTarget
) -> tuple[RecordDelta, RecordDelta]:
    """Deltas that leave exactly ``target``'s markers on both records."""

    wanted: dict[str, frozenset[RelationshipField]]
    match target.rank:
        case LifecycleRank.FRIENDS:
            wanted = {first_id: frozenset({FRIENDS}), second_id: frozenset({FRIENDS})}
        case LifecycleRank.REQUEST:
            if target.requester not in {first_id, second_id}:
                raise ValueError(f"Requester {target.requester!r} is not part of this edge")
            wanted = {
                first_id: frozenset({SENT if target.requester == first_id else RECEIVED}),
                second_id: frozenset({SENT if target.requester == second_id else RECEIVED}),
            }
        case LifecycleRank.UNRELATED:
            wanted = {first_id: frozenset(), second_id: frozenset()}

    def _normalize(owner: str, other: str) -> RecordDelta:
        keep = wanted[owner]
        return RecordDelta.of(
            owner,
            remove=tuple((name, other) for name in RelationshipField if name not in keep),
            add=tuple((name, other) for name in RelationshipField if name in keep),
        )

    return _normalize(first_id, second_id), _normalize(second_id, first_id)


def _describe(markers: frozenset[RelationshipField]) -> str:
    names = sorted(marker.value for marker in markers)
    return "already referenced in " + ", ".join(names)
