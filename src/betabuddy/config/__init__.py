"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_int, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
)
from .firestore import FirestoreConfig, get_firestore_config
from .http_resilience import HttpRetryPolicy, RateLimit, ResilienceConfig
from .logging import configure_logging
from .propagation import PropagationConfig, RetryPolicy, get_propagation_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    StoreBackend,
    get_database_config,
    get_storage_config,
    get_store_backend,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "FirestoreConfig",
    "HttpRetryPolicy",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "PropagationConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreBackend",
    "configure_logging",
    "env_bool",
    "env_int",
    "get_database_config",
    "get_firestore_config",
    "get_propagation_config",
    "get_storage_config",
    "get_store_backend",
    "require_env_vars",
]
