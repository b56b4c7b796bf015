"""Logging setup for the BetaBuddy CLI and background jobs."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Libraries that log every request or migration step at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "alembic.runtime.migration")


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Configure the root logger for a BetaBuddy process.

    ``verbose`` switches the ``betabuddy`` loggers to DEBUG, which includes every
    retried write and every repaired pair. Third-party loggers stay at WARNING
    unless ``verbose`` is set. ``force`` replaces handlers installed earlier.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    library_level = logging.INFO if verbose else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
