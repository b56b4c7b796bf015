"""Retry and conflict-resolution settings for relationship propagation."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_bool, env_int
from .errors import InvalidConfigurationError

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff applied to every single-document write."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_wait: float = 0.2
    max_wait: float = 5.0
    jitter: float = 0.2

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise InvalidConfigurationError("RetryPolicy.max_attempts", "must be at least 1")
        if self.initial_wait < 0 or self.max_wait < 0 or self.jitter < 0:
            raise InvalidConfigurationError("RetryPolicy waits", "must be non-negative")


@dataclass(frozen=True, slots=True)
class PropagationConfig:
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    # crossing requests become a friendship instead of the lower-id request winning
    auto_accept_mutual_requests: bool = True
    reconcile_workers: int = 1


def get_propagation_config() -> PropagationConfig:
    workers = env_int("BETABUDDY_RECONCILE_WORKERS", 1)
    if workers < 1:
        raise InvalidConfigurationError("BETABUDDY_RECONCILE_WORKERS", "must be at least 1")
    return PropagationConfig(
        retry=RetryPolicy(max_attempts=env_int("BETABUDDY_RETRY_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
        auto_accept_mutual_requests=env_bool("BETABUDDY_AUTO_ACCEPT_MUTUAL", True),
        reconcile_workers=workers,
    )
