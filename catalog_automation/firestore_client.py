"""Firestore client singleton."""

import logging
from typing import Optional

from google.cloud import firestore

from catalog_automation import config

logger = logging.getLogger(__name__)

_db: Optional[firestore.Client] = None


def get_db() -> firestore.Client:
    """Get or initialize Firestore client."""
    global _db
    if _db is None:
        if config.FIRESTORE_EMULATOR_HOST:
            logger.info("Using Firestore emulator at %s", config.FIRESTORE_EMULATOR_HOST)
        _db = firestore.Client(project=config.PROJECT_ID)
    return _db
