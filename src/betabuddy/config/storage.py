"""Where user documents and the propagation log are kept.

User documents live either in a local SQL database or in Firestore. The
propagation log always lives in the SQL database, so deferred writes survive
a restart whichever backend holds the documents.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Final

from .env import env_int
from .errors import InvalidConfigurationError

APP_DIR_NAME: Final[str] = "betabuddy"
DEFAULT_DB_FILENAME: Final[str] = "betabuddy.db"
DEFAULT_DB_TIMEOUT_SECONDS: Final[int] = 10


class StoreBackend(StrEnum):
    SQLITE = "sqlite"
    FIRESTORE = "firestore"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, ensure: bool = True) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if ensure:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    # sqlite3 busy timeout; concurrent writers wait this long for the file lock
    timeout_seconds: float = DEFAULT_DB_TIMEOUT_SECONDS

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = os.getenv("BETABUDDY_DATA_DIR")
    data_dir = Path(override) if override else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""
    timeout = env_int("BETABUDDY_DB_TIMEOUT", DEFAULT_DB_TIMEOUT_SECONDS)
    uri = os.getenv("DATABASE_URI") or (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri, timeout_seconds=timeout)


def get_store_backend() -> StoreBackend:
    raw = (os.getenv("BETABUDDY_STORE") or StoreBackend.SQLITE).strip().lower()
    if raw not in StoreBackend:
        options = ", ".join(StoreBackend)
        raise InvalidConfigurationError("BETABUDDY_STORE", f"must be one of: {options}")
    return StoreBackend(raw)
