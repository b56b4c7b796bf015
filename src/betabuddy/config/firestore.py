"""Firestore REST configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1/"
FIRESTORE_TIMEOUT_SECONDS = 10.0
DEFAULT_DATABASE = "(default)"
USERS_COLLECTION = "users"


@dataclass(frozen=True)
class FirestoreConfig:
    """Holds Firestore project coordinates and client settings."""

    project_id: str
    resilience: ResilienceConfig
    database: str = DEFAULT_DATABASE
    collection: str = USERS_COLLECTION

    @property
    def documents_path(self) -> str:
        return f"projects/{self.project_id}/databases/{self.database}/documents"


def get_firestore_config(*, resilience: ResilienceConfig | None = None) -> FirestoreConfig:
    values = require_env_vars(("FIRESTORE_PROJECT_ID",))
    token = os.getenv("FIRESTORE_ACCESS_TOKEN")
    headers = {"Authorization": f"Bearer {token.strip()}"} if token and token.strip() else None
    return FirestoreConfig(
        project_id=values["FIRESTORE_PROJECT_ID"],
        database=os.getenv("FIRESTORE_DATABASE") or DEFAULT_DATABASE,
        resilience=resilience
        or ResilienceConfig(
            name="firestore",
            base_url=FIRESTORE_BASE_URL,
            timeout_seconds=FIRESTORE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
            default_headers=headers,
        ),
    )
