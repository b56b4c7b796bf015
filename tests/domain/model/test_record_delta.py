from __future__ import annotations

import pytest

from betabuddy.domain.model import RecordDelta, RelationshipField
from tests.helpers.users import make_user

FRIENDS = RelationshipField.FRIENDS
SENT = RelationshipField.SENT_REQUESTS
RECEIVED = RelationshipField.RECEIVED_REQUESTS


def test_apply_returns_only_changed_fields() -> None:
    record = make_user("alice", friends={"carol"}, received={"bob"})
    delta = RecordDelta.of("alice", remove=((RECEIVED, "bob"),), add=((FRIENDS, "bob"),))

    changed = delta.apply_to(record)

    assert changed == {
        FRIENDS: frozenset({"carol", "bob"}),
        RECEIVED: frozenset(),
    }


def test_delta_is_idempotent() -> None:
    delta = RecordDelta.of("alice", add=((SENT, "bob"),))
    record = make_user("alice")

    first = record.with_fields(delta.apply_to(record), revision="2")

    assert delta.apply_to(first) == {}
    assert delta.is_satisfied_by(first)
    assert not delta.is_satisfied_by(record)


def test_removal_of_absent_value_is_noop() -> None:
    delta = RecordDelta.of("alice", remove=((FRIENDS, "bob"),))

    assert delta.apply_to(make_user("alice", friends={"carol"})) == {}


def test_removes_run_before_adds() -> None:
    delta = RecordDelta.of("alice", add=((FRIENDS, "bob"),), remove=((FRIENDS, "bob"),))

    changed = delta.apply_to(make_user("alice"))

    assert changed == {FRIENDS: frozenset({"bob"})}


def test_apply_to_wrong_record_raises() -> None:
    delta = RecordDelta.of("alice", add=((SENT, "bob"),))

    with pytest.raises(ValueError, match="alice"):
        delta.apply_to(make_user("bob"))


def test_empty_delta() -> None:
    assert RecordDelta.of("alice").is_empty
    assert not RecordDelta.of("alice", add=((SENT, "bob"),)).is_empty
