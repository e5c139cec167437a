"""Settings Store - Orchestrator settings keyed by name."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.cloud import firestore

from catalog_automation import config
from catalog_automation.firestore_client import get_db
from catalog_automation.retry import with_retries

logger = logging.getLogger(__name__)

AUTO_REFRESH_ENABLED = "auto_refresh_enabled"


class SettingsStore:
    """Firestore-backed key/value settings."""

    def __init__(self, db: Optional[firestore.Client] = None, collection: str = config.SETTINGS_COLLECTION):
        self._db = db
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    def get(self, key: str, default: Any = None) -> Any:
        doc = with_retries(
            lambda: self.db.collection(self.collection).document(key).get(),
            f"read setting {key}",
        )
        if not doc.exists:
            return default
        return (doc.to_dict() or {}).get("value", default)

    def set(self, key: str, value: Any) -> None:
        doc_ref = self.db.collection(self.collection).document(key)
        data = {
            "key": key,
            "value": value,
            "updated_at": datetime.now(timezone.utc),
        }
        with_retries(lambda: doc_ref.set(data), f"write setting {key}")
        logger.info("Setting %s = %s", key, value)

    def list_settings(self) -> List[Dict[str, Any]]:
        docs = with_retries(
            lambda: list(self.db.collection(self.collection).stream()),
            "list settings",
        )
        settings = []
        for doc in docs:
            data = doc.to_dict() or {}
            settings.append({"key": data.get("key", doc.id), "value": data.get("value")})
        return settings


__all__ = ["SettingsStore", "AUTO_REFRESH_ENABLED"]
