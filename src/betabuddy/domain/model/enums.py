"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class RelationshipField(StrEnum):
    """Relationship fields of a user document, valued by their wire names."""

    FRIENDS = "friends"
    SENT_REQUESTS = "sentFriendRequests"
    RECEIVED_REQUESTS = "receivedFriendRequests"


class EdgeState(StrEnum):
    """Relationship between two users as seen from one of them."""

    UNRELATED = "unrelated"
    REQUEST_OUTGOING = "request_outgoing"
    REQUEST_INCOMING = "request_incoming"
    FRIENDS = "friends"
    INCONSISTENT = "inconsistent"


class LifecycleRank(IntEnum):
    """How far along the lifecycle an edge is; higher wins during repair."""

    UNRELATED = 0
    REQUEST = 1
    FRIENDS = 2


class TransitionKind(StrEnum):
    SEND_REQUEST = "send_request"
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    UNFRIEND = "unfriend"


class RejectionReason(StrEnum):
    SELF_REFERENCE = "self_reference"
    ALREADY_RELATED = "already_related"
    NOT_IN_REQUESTED_STATE = "not_in_requested_state"
    PARTY_GONE = "party_gone"


class OutcomeStatus(StrEnum):
    APPLIED = "applied"
    REJECTED = "rejected"
    PARTIALLY_APPLIED = "partially_applied"
    UNAVAILABLE = "unavailable"
