"""Errors raised while reading BetaBuddy settings from the environment.

All of them derive from :class:`ConfigurationError` so the CLI can map any
settings problem to a single exit code.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Base class for unusable BetaBuddy settings."""


class MissingConfigurationError(ConfigurationError):
    """A required setting (for example the Firestore project id) is unset or blank."""


class InvalidConfigurationError(ConfigurationError):
    """A setting is present but cannot be parsed or is out of range.

    ``setting`` names the environment variable or field that was rejected.
    """

    def __init__(self, setting: str, message: str) -> None:
        super().__init__(f"{setting} {message}")
        self.setting = setting
