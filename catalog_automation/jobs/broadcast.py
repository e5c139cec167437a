"""
Broadcast - completion events for connected clients.

Events are appended to broadcast_channels/{channel}/events, where clients
follow them with snapshot listeners.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from catalog_automation import config
from catalog_automation.exceptions import BroadcastError
from catalog_automation.firestore_client import get_db

logger = logging.getLogger(__name__)


class FirestoreBroadcaster:
    """Publishes {type, timestamp, message} events on one channel."""

    def __init__(
        self,
        db: Optional[firestore.Client] = None,
        channel: str = config.BROADCAST_CHANNEL,
        collection: str = config.BROADCAST_COLLECTION,
    ):
        self._db = db
        self.channel = channel
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    def publish(self, event_type: str, message: str, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Publish one event. Single attempt.

        Raises:
            BroadcastError: The event could not be written
        """
        event = {
            "type": event_type,
            "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(),
            "message": message,
        }
        try:
            (self.db.collection(self.collection)
             .document(self.channel)
             .collection("events")
             .add(event))
        except gcp_exceptions.GoogleAPIError as e:
            raise BroadcastError(f"Broadcast on {self.channel} failed: {e}") from e
        logger.debug("Broadcast %s on %s", event_type, self.channel)
        return event


__all__ = ["FirestoreBroadcaster"]
