from __future__ import annotations

import argparse
import logging
import sys
from contextlib import closing
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from betabuddy.app import (
    build_runtime,
    reconcile,
    register_user,
    remove_account,
    run_transition,
)
from betabuddy.config import configure_logging
from betabuddy.domain.model import OutcomeStatus, TransitionKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

_TRANSITION_COMMANDS: dict[str, TransitionKind] = {
    "send-request": TransitionKind.SEND_REQUEST,
    "accept": TransitionKind.ACCEPT,
    "reject": TransitionKind.REJECT,
    "cancel": TransitionKind.CANCEL,
    "unfriend": TransitionKind.UNFRIEND,
}

_TRANSITION_HELP: dict[str, str] = {
    "send-request": "Send a friend request",
    "accept": "Accept an incoming friend request",
    "reject": "Reject an incoming friend request",
    "cancel": "Cancel an outgoing friend request",
    "unfriend": "Remove an existing friend",
}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage BetaBuddy friend relationships")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-user", help="Create a user document")
    create.add_argument("user_id", type=str, help="Id of the new user")
    create.add_argument("--username", type=str, required=True, help="Display name")
    create.add_argument("--email", type=str, default="", help="Optional email address")

    for command, help_text in _TRANSITION_HELP.items():
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("self_id", type=str, help="Id of the acting user")
        sub.add_argument("other_id", type=str, help="Id of the other user")

    status = subparsers.add_parser("status", help="Show the relationship between two users")
    status.add_argument("self_id", type=str)
    status.add_argument("other_id", type=str)

    friends = subparsers.add_parser("friends", help="List a user's friends and requests")
    friends.add_argument("user_id", type=str)

    discover = subparsers.add_parser("discover", help="List users a user could befriend")
    discover.add_argument("user_id", type=str)

    subparsers.add_parser("reconcile", help="Repair asymmetric relationships")

    delete = subparsers.add_parser(
        "delete-account", help="Delete a user and remove every reference to it"
    )
    delete.add_argument("user_id", type=str)

    return parser.parse_args(list(argv))


def _print(line: str) -> None:
    sys.stdout.write(line + "\n")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(verbose=parsed_args.verbose)

    try:
        with closing(build_runtime()) as runtime:
            command = parsed_args.command
            if command in _TRANSITION_COMMANDS:
                outcome = run_transition(
                    runtime,
                    _TRANSITION_COMMANDS[command],
                    parsed_args.self_id,
                    parsed_args.other_id,
                )
                reason = f": {outcome.reason.value}" if outcome.reason else ""
                _print(outcome.status.value + reason)
                if outcome.status is OutcomeStatus.UNAVAILABLE:
                    sys.exit(3)
            elif command == "create-user":
                record = register_user(
                    runtime,
                    parsed_args.user_id,
                    username=parsed_args.username,
                    email=parsed_args.email,
                )
                _print(record.user_id)
            elif command == "status":
                state = runtime.service.relationship_state(
                    parsed_args.self_id, parsed_args.other_id
                )
                _print(state.value)
            elif command == "friends":
                record = runtime.service.propagator.fetch(parsed_args.user_id)
                _print("friends: " + ", ".join(sorted(record.friends)))
                _print("sent: " + ", ".join(sorted(record.sent_friend_requests)))
                _print("received: " + ", ".join(sorted(record.received_friend_requests)))
            elif command == "discover":
                for user_id in runtime.service.discoverable_users(parsed_args.user_id):
                    _print(user_id)
            elif command == "reconcile":
                report = reconcile(runtime)
                for repair in report.repairs:
                    first, second = repair.pair
                    _print(f"repaired {first} <-> {second}: {repair.target.rank.name.lower()}")
                for pair, error in report.failures.items():
                    _print(f"failed {pair[0]} <-> {pair[1]}: {error}")
                for user_id, error in report.unreadable.items():
                    _print(f"unreadable {user_id}: {error}")
                if report.failures or report.unreadable or report.drained.remaining:
                    sys.exit(3)
            elif command == "delete-account":
                sweep = remove_account(runtime, parsed_args.user_id)
                _print(f"cleaned {len(sweep.cleaned)} documents")
                if not sweep.complete:
                    sys.exit(3)
            else:
                raise ValueError(f"Unsupported command: {command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
