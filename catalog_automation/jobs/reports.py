"""
Report Store - Latest run report per job kind.

Each kind has a single document, replaced in a transaction. Readers only
ever see a whole document: the previous report or the new one.
"""

from __future__ import annotations

import logging
from typing import Optional

from google.cloud import firestore

from catalog_automation import config
from catalog_automation.firestore_client import get_db
from catalog_automation.jobs.models import JobKind, RunReport
from catalog_automation.retry import with_retries

logger = logging.getLogger(__name__)


class ReportStore:
    """Firestore-backed run report persistence."""

    def __init__(self, db: Optional[firestore.Client] = None, collection: str = config.REPORTS_COLLECTION):
        self._db = db
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    def save(self, report: RunReport) -> bool:
        """
        Replace the stored report for the report's kind.

        The stored report is kept when it is newer than the one being written,
        so reports are totally ordered by completion time.

        Returns:
            True if the report was written

        Raises:
            PersistenceError: Store unreachable after retries
        """
        doc_ref = self.db.collection(self.collection).document(report.job_kind.value)

        @firestore.transactional
        def save_transaction(transaction, doc_ref):
            doc = doc_ref.get(transaction=transaction)
            if doc.exists:
                existing = RunReport.from_dict(doc.to_dict() or {})
                if existing.timestamp > report.timestamp:
                    return False
            transaction.set(doc_ref, report.to_dict())
            return True

        written = with_retries(
            lambda: save_transaction(self.db.transaction(), doc_ref),
            f"save {report.job_kind.value} report",
        )
        if not written:
            logger.info("Kept newer %s report over %s", report.job_kind.value,
                        report.timestamp.isoformat())
        return written

    def get_latest(self, kind: JobKind) -> Optional[RunReport]:
        doc = with_retries(
            lambda: self.db.collection(self.collection).document(kind.value).get(),
            f"read {kind.value} report",
        )
        if not doc.exists:
            return None
        return RunReport.from_dict(doc.to_dict() or {})


__all__ = ["ReportStore"]
