from __future__ import annotations

import pytest

from betabuddy.adapters.memory import InMemoryPropagationLog
from betabuddy.app import Runtime, build_runtime
from betabuddy.config import PropagationConfig
from betabuddy.domain.model import RelationshipField
from betabuddy.ui import cli
from tests.helpers.config import FAST_RETRY
from tests.helpers.stores import FlakyStore
from tests.helpers.users import make_user, seeded_store


@pytest.fixture
def cli_store(monkeypatch: pytest.MonkeyPatch) -> FlakyStore:
    store = FlakyStore(seeded_store("alice", "bob"))
    propagation_log = InMemoryPropagationLog()

    def fake_runtime() -> Runtime:
        return build_runtime(
            store=store,
            propagation_log=propagation_log,
            config=PropagationConfig(retry=FAST_RETRY),
        )

    monkeypatch.setattr(cli, "build_runtime", fake_runtime)
    return store


def _output(capsys: pytest.CaptureFixture[str]) -> list[str]:
    return capsys.readouterr().out.splitlines()


def test_friendship_commands(cli_store: FlakyStore, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["create-user", "carol", "--username", "Carol"])
    cli.main(["send-request", "carol", "alice"])
    cli.main(["status", "alice", "carol"])
    cli.main(["accept", "alice", "carol"])
    cli.main(["friends", "carol"])

    assert _output(capsys) == [
        "carol",
        "applied",
        "request_incoming",
        "applied",
        "friends: alice",
        "sent: ",
        "received: ",
    ]
    assert cli_store.fetch("alice").friends == frozenset({"carol"})


def test_rejected_transition_prints_reason(
    cli_store: FlakyStore, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["accept", "alice", "bob"])

    assert _output(capsys) == ["rejected: not_in_requested_state"]
    assert cli_store.update_attempts == {}


def test_discover(cli_store: FlakyStore, capsys: pytest.CaptureFixture[str]) -> None:
    cli_store.create(make_user("carol"))
    cli.main(["send-request", "alice", "bob"])
    capsys.readouterr()

    cli.main(["discover", "alice"])

    assert _output(capsys) == ["carol"]


def test_unavailable_store_exits_with_3(
    cli_store: FlakyStore, capsys: pytest.CaptureFixture[str]
) -> None:
    cli_store.fail_fetches("bob", FAST_RETRY.max_attempts)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["send-request", "alice", "bob"])

    assert excinfo.value.code == 3
    assert _output(capsys) == ["unavailable"]


def test_reconcile_reports_repairs(
    cli_store: FlakyStore, capsys: pytest.CaptureFixture[str]
) -> None:
    cli_store.inner.update_fields("alice", {RelationshipField.FRIENDS: ["bob"]})

    cli.main(["reconcile"])

    assert _output(capsys) == ["repaired alice <-> bob: friends"]


def test_delete_account(cli_store: FlakyStore, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["send-request", "alice", "bob"])
    capsys.readouterr()

    cli.main(["delete-account", "bob"])

    assert _output(capsys) == ["cleaned 1 documents"]
    assert cli_store.list_ids() == ["alice"]


def test_failures_exit_with_1(cli_store: FlakyStore) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["status", "ghost", "alice"])

    assert excinfo.value.code == 1


def test_missing_command_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2
