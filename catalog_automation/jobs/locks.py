"""
Lease Locks - Cross-replica exclusivity per job kind.

A lock is a document automation_locks/{kind} with an expires_at. Acquiring
takes over an expired lock; a heartbeat thread extends the lease while the
run is alive, and the watchdog removes locks whose holder crashed.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from google.cloud import firestore

from catalog_automation import config
from catalog_automation.firestore_client import get_db
from catalog_automation.logging_utils import INSTANCE_ID, log_event

logger = logging.getLogger(__name__)


class LockLostError(Exception):
    """Lock was taken over by another owner."""


class FirestoreLeaseLock:
    """
    Per-kind lease lock stored in Firestore.

    Usage:
        lock = FirestoreLeaseLock()
        if lock.acquire("discovery", run_id):
            try:
                ...
            finally:
                lock.release("discovery", run_id)
    """

    def __init__(
        self,
        db: Optional[firestore.Client] = None,
        owner_id: str = INSTANCE_ID,
        lease_secs: int = config.LEASE_DURATION_SECS,
        collection: str = config.LOCKS_COLLECTION,
    ):
        self._db = db
        self.owner_id = owner_id
        self.lease_secs = lease_secs
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    def acquire(self, kind: str, run_id: str) -> bool:
        """
        Acquire the lock for a kind.

        Returns:
            True if acquired, False if held by a live owner or the store failed
        """
        lock_ref = self.db.collection(self.collection).document(kind)

        @firestore.transactional
        def lock_transaction(transaction, lock_ref):
            doc = lock_ref.get(transaction=transaction)
            now = datetime.now(timezone.utc)

            if doc.exists:
                existing_expires = (doc.to_dict() or {}).get("expires_at")
                if existing_expires and existing_expires > now:
                    return False

            transaction.set(lock_ref, {
                "kind": kind,
                "run_id": run_id,
                "owner_id": self.owner_id,
                "acquired_at": now,
                "expires_at": now + timedelta(seconds=self.lease_secs),
            })
            return True

        try:
            acquired = lock_transaction(self.db.transaction(), lock_ref)
        except Exception as e:
            logger.warning("Failed to acquire lock for %s: %s", kind, e)
            return False

        if acquired:
            logger.info("Acquired lock for %s (run %s)", kind, run_id)
        return acquired

    def renew(self, kind: str, run_id: str) -> None:
        """
        Extend the lease.

        Raises:
            LockLostError: The lock is gone or owned by another run
        """
        lock_ref = self.db.collection(self.collection).document(kind)

        @firestore.transactional
        def renew_transaction(transaction, lock_ref):
            doc = lock_ref.get(transaction=transaction)
            data = (doc.to_dict() or {}) if doc.exists else {}
            if data.get("run_id") != run_id or data.get("owner_id") != self.owner_id:
                raise LockLostError(f"Lock for {kind} no longer held by run {run_id}")
            transaction.update(lock_ref, {
                "expires_at": datetime.now(timezone.utc) + timedelta(seconds=self.lease_secs),
            })

        renew_transaction(self.db.transaction(), lock_ref)

    def release(self, kind: str, run_id: str) -> bool:
        """Release the lock if this run still owns it."""
        lock_ref = self.db.collection(self.collection).document(kind)

        @firestore.transactional
        def release_transaction(transaction, lock_ref):
            doc = lock_ref.get(transaction=transaction)
            if not doc.exists:
                return True

            data = doc.to_dict() or {}
            if data.get("run_id") != run_id or data.get("owner_id") != self.owner_id:
                logger.warning("Lock ownership mismatch for %s", kind)
                return False

            transaction.delete(lock_ref)
            return True

        try:
            released = release_transaction(self.db.transaction(), lock_ref)
        except Exception as e:
            logger.warning("Failed to release lock for %s: %s", kind, e)
            return False

        if released:
            logger.info("Released lock for %s", kind)
        return released


class HeartbeatThread:
    """Background thread for lease renewal."""

    def __init__(self, lock: FirestoreLeaseLock, kind: str, run_id: str,
                 interval_secs: float = config.HEARTBEAT_INTERVAL_SECS):
        self.lock = lock
        self.kind = kind
        self.run_id = run_id
        self.interval_secs = interval_secs
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start the heartbeat thread."""
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        log_event("heartbeat_started", job_kind=self.kind, run_id=self.run_id)

    def stop(self):
        """Stop the heartbeat thread."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        log_event("heartbeat_stopped", job_kind=self.kind, run_id=self.run_id)

    def _loop(self):
        while not self._stop.wait(self.interval_secs):
            try:
                self.lock.renew(self.kind, self.run_id)
            except LockLostError as e:
                log_event("lock_lost", job_kind=self.kind, run_id=self.run_id,
                          level=logging.WARNING, error=str(e))
                return
            except Exception as e:
                log_event("heartbeat_error", job_kind=self.kind, run_id=self.run_id,
                          level=logging.WARNING, error=str(e))


__all__ = ["FirestoreLeaseLock", "HeartbeatThread", "LockLostError"]
