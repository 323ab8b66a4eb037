"""Firestore client construction (REST-based, no firebase-admin).

Credentials come from FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or
FIREBASE_SERVICE_ACCOUNT_PATH (file path). With neither set the client runs
unauthenticated, which is what the Firestore emulator expects.
"""

import json
import logging
from pathlib import Path

import httpx

from recordcache.core.config import Settings, get_settings
from recordcache.infrastructure.firebase._rest_client import (
    DEFAULT_BASE_URL,
    FirestoreRESTClient,
    get_credentials,
)

logger = logging.getLogger(__name__)


def load_service_account(settings: Settings) -> dict | None:
    """Return service account dict from env key or file path, or None."""
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            raise ValueError(f"FIREBASE_SERVICE_ACCOUNT_PATH file not found: {resolved}")
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def create_firestore_client(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    base_url: str = DEFAULT_BASE_URL,
) -> FirestoreRESTClient:
    """Build a FirestoreRESTClient from settings.

    Raises:
        ValueError: If no project id is configured or the key is malformed.
    """
    settings = settings or get_settings()
    key_dict = load_service_account(settings)
    project_id = settings.firestore_project_id or (key_dict or {}).get("project_id")
    if not project_id:
        raise ValueError(
            "Set FIRESTORE_PROJECT_ID or provide a service account with 'project_id'."
        )
    credentials = get_credentials(key_dict) if key_dict else None
    if credentials is None:
        logger.warning("Firestore client for %s has no credentials", project_id)
    return FirestoreRESTClient(
        project_id,
        credentials,
        http_client=http_client,
        base_url=base_url,
        timeout=settings.cache_op_timeout_seconds,
    )
