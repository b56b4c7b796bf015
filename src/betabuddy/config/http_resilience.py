"""Transport settings for the Firestore REST client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from betabuddy import __version__

from .errors import InvalidConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

USER_AGENT = f"betabuddy/{__version__}"

# Only requests whose replay is harmless. A create replayed after a lost response
# reports ALREADY_EXISTS, a delete reports NOT_FOUND. A conditional PATCH replayed
# after it landed fails its updateTime precondition and is resolved by a re-read.
REPLAYABLE_METHODS = frozenset({"GET", "PATCH"})

# RESOURCE_EXHAUSTED, INTERNAL, UNAVAILABLE and DEADLINE_EXCEEDED, plus the 502
# returned by the Google front end.
TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class HttpRetryPolicy:
    """Retries done inside the HTTP transport, below the propagation retries."""

    total: int = 3
    backoff_factor: float = 0.25
    max_backoff_wait: float = 8.0
    backoff_jitter: float = 1.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = REPLAYABLE_METHODS
    status_forcelist: frozenset[int] = TRANSIENT_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )

    def __post_init__(self) -> None:
        if self.total < 0:
            raise InvalidConfigurationError("HttpRetryPolicy.total", "must not be negative")


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float

    def __post_init__(self) -> None:
        if self.max_calls < 1 or self.per_seconds <= 0:
            raise InvalidConfigurationError(
                "RateLimit", f"needs a positive budget, got {self.max_calls}/{self.per_seconds}s"
            )


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 10.0
    retry: HttpRetryPolicy = field(default_factory=HttpRetryPolicy)
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None

    def request_headers(self) -> dict[str, str]:
        """Headers sent with every request; explicit defaults win over the user agent."""
        headers = {"User-Agent": USER_AGENT}
        headers.update(self.default_headers or {})
        return headers
