"""
Catalog Store - Firestore access to catalog records, news and content markers.

All conditional writes use Firestore transactions so that a quality fix
never races a concurrent discovery write on the same record.

Collections:
- tools/{recordId}: Catalog records
- ai_news/{newsId}: News items
- content_cache/{contentType}: Last-updated markers
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from catalog_automation import config
from catalog_automation.catalog.models import CatalogRecord, FixOutcome, NewsItem
from catalog_automation.firestore_client import get_db
from catalog_automation.retry import with_retries

logger = logging.getLogger(__name__)

# Firestore batch limit is 500 operations
BATCH_SIZE = 400
PAGE_SIZE = 500

# Fields discovery is allowed to overwrite on an existing record
DISCOVERY_FIELDS = (
    "name", "description", "category", "website", "rating", "review_count",
    "weekly_users", "growth", "source", "pricing", "logo",
)

# Fields a quality fix corrects
METRIC_FIELDS = ("rating", "review_count", "weekly_users", "growth")


def _metrics_changed(existing: CatalogRecord, incoming: CatalogRecord) -> bool:
    return any(getattr(existing, key) != getattr(incoming, key) for key in METRIC_FIELDS)


class CatalogStore:
    """
    Typed read/upsert access to catalog records.

    Usage:
        store = CatalogStore()
        records = store.list_records()
    """

    def __init__(self, db: Optional[firestore.Client] = None, collection: str = config.TOOLS_COLLECTION):
        self._db = db
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    # =========================================================================
    # READS
    # =========================================================================

    def list_records(self, max_records: Optional[int] = None) -> List[CatalogRecord]:
        """Page through the whole collection ordered by document id."""
        records: List[CatalogRecord] = []
        last_doc = None

        while max_records is None or len(records) < max_records:
            page_size = PAGE_SIZE if max_records is None else min(PAGE_SIZE, max_records - len(records))
            query = self.db.collection(self.collection).order_by("__name__").limit(page_size)
            if last_doc is not None:
                query = query.start_after(last_doc)

            docs = with_retries(lambda: list(query.stream()), "list catalog records")
            if not docs:
                break

            for doc in docs:
                records.append(CatalogRecord.from_dict(doc.to_dict() or {}, doc_id=doc.id))

            last_doc = docs[-1]
            if len(docs) < page_size:
                break

        logger.debug("Fetched %d catalog records", len(records))
        return records

    def get_record(self, record_id: str) -> Optional[CatalogRecord]:
        doc = with_retries(
            lambda: self.db.collection(self.collection).document(record_id).get(),
            f"get record {record_id}",
        )
        if not doc.exists:
            return None
        return CatalogRecord.from_dict(doc.to_dict() or {}, doc_id=doc.id)

    # =========================================================================
    # WRITES
    # =========================================================================

    def upsert_record(self, record: CatalogRecord) -> bool:
        """
        Insert a new record or update discovery fields of an existing one.

        Editorial fields (trending_score, created_at) of existing records are
        preserved. A previous quality fix is kept only while discovery leaves
        the fixed metrics untouched; new metric values clear
        data_quality_fixed so the next quality pass checks them again.

        Returns:
            True if the record was created, False if updated
        """
        doc_ref = self.db.collection(self.collection).document(record.id)

        @firestore.transactional
        def upsert_transaction(transaction, doc_ref):
            doc = doc_ref.get(transaction=transaction)
            now = datetime.now(timezone.utc)
            data = record.to_dict()

            if doc.exists:
                existing = CatalogRecord.from_dict(doc.to_dict() or {}, doc_id=doc.id)
                updates = {key: data[key] for key in DISCOVERY_FIELDS}
                updates["updated_at"] = now
                if existing.data_quality_fixed and _metrics_changed(existing, record):
                    updates["data_quality_fixed"] = False
                    updates["auto_fixed_at"] = None
                transaction.update(doc_ref, updates)
                return False

            data["created_at"] = data.get("created_at") or now
            data["updated_at"] = now
            transaction.set(doc_ref, data)
            return True

        return with_retries(
            lambda: upsert_transaction(self.db.transaction(), doc_ref),
            f"upsert record {record.id}",
        )

    def apply_fix(
        self,
        record_id: str,
        patch: Dict[str, Any],
        expected_updated_at: Optional[datetime],
        fixed_at: Optional[datetime] = None,
    ) -> FixOutcome:
        """
        Atomically apply a quality fix to one record.

        The write is skipped when the record was deleted or its updated_at no
        longer matches the value read by the quality pass.

        Args:
            record_id: Record to fix
            patch: Corrected field values
            expected_updated_at: updated_at observed when the record was read
            fixed_at: Fix timestamp (defaults to now)

        Returns:
            FixOutcome
        """
        doc_ref = self.db.collection(self.collection).document(record_id)
        fixed_at = fixed_at or datetime.now(timezone.utc)

        @firestore.transactional
        def fix_transaction(transaction, doc_ref):
            doc = doc_ref.get(transaction=transaction)
            if not doc.exists:
                return FixOutcome.MISSING

            current = CatalogRecord.from_dict(doc.to_dict() or {}, doc_id=doc.id)
            if current.updated_at != expected_updated_at:
                return FixOutcome.CHANGED

            updates = dict(patch)
            updates["data_quality_fixed"] = True
            updates["auto_fixed_at"] = fixed_at
            updates["updated_at"] = fixed_at
            transaction.update(doc_ref, updates)
            return FixOutcome.APPLIED

        outcome = with_retries(
            lambda: fix_transaction(self.db.transaction(), doc_ref),
            f"apply fix to {record_id}",
        )
        logger.debug("Fix for %s: %s", record_id, outcome.value)
        return outcome

    def update_trending_scores(self, scores: Dict[str, float]) -> int:
        """
        Write recomputed trending scores using batched writes.

        A batch is all-or-nothing, so a batch that hits a record deleted since
        it was listed is rewritten one record at a time, skipping the missing
        ones.

        Returns:
            Number of records updated
        """
        items = list(scores.items())
        updated = 0
        for start in range(0, len(items), BATCH_SIZE):
            chunk = items[start:start + BATCH_SIZE]
            written = with_retries(lambda: self._commit_scores(chunk), "commit trending scores")
            if written is None:
                written = sum(self._update_score(record_id, score) for record_id, score in chunk)
            updated += written
        return updated

    def _commit_scores(self, chunk: List[Tuple[str, float]]) -> Optional[int]:
        batch = self.db.batch()
        for record_id, score in chunk:
            batch.update(self.db.collection(self.collection).document(record_id), {"trending_score": score})
        try:
            batch.commit()
        except gcp_exceptions.NotFound:
            return None
        return len(chunk)

    def _update_score(self, record_id: str, score: float) -> int:
        doc_ref = self.db.collection(self.collection).document(record_id)

        def update():
            try:
                doc_ref.update({"trending_score": score})
            except gcp_exceptions.NotFound:
                logger.info("Record %s deleted before its trending score was written", record_id)
                return 0
            return 1

        return with_retries(update, f"update trending score for {record_id}")


class NewsStore:
    """Upsert access to the news collection."""

    def __init__(self, db: Optional[firestore.Client] = None, collection: str = config.NEWS_COLLECTION):
        self._db = db
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    def upsert_items(self, items: List[NewsItem]) -> Tuple[int, int]:
        """
        Insert or update news items.

        Returns:
            (added, updated)
        """
        added = 0
        updated = 0
        now = datetime.now(timezone.utc)

        for item in items:
            doc_ref = self.db.collection(self.collection).document(item.id)
            doc = with_retries(doc_ref.get, f"get news {item.id}")
            data = item.to_dict()
            if doc.exists:
                data.pop("created_at", None)
                with_retries(lambda: doc_ref.set(data, merge=True), f"update news {item.id}")
                updated += 1
            else:
                data["created_at"] = data.get("created_at") or now
                with_retries(lambda: doc_ref.set(data), f"insert news {item.id}")
                added += 1

        return added, updated

    def count_by_source(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        docs = with_retries(lambda: list(self.db.collection(self.collection).stream()), "list news")
        for doc in docs:
            source = (doc.to_dict() or {}).get("source") or "Unknown"
            counts[source] = counts.get(source, 0) + 1
        return counts


class ContentMarkerStore:
    """Last-updated marker per content type, for cheap staleness checks."""

    def __init__(self, db: Optional[firestore.Client] = None,
                 collection: str = config.CONTENT_CACHE_COLLECTION):
        self._db = db
        self.collection = collection

    @property
    def db(self) -> firestore.Client:
        if self._db is None:
            self._db = get_db()
        return self._db

    def touch(self, content_type: str, updated_by: str = "system",
              when: Optional[datetime] = None) -> None:
        doc_ref = self.db.collection(self.collection).document(content_type)
        data = {
            "content_type": content_type,
            "last_updated": when or datetime.now(timezone.utc),
            "updated_by": updated_by,
        }
        with_retries(lambda: doc_ref.set(data), f"touch content marker {content_type}")

    def list_markers(self) -> List[Dict[str, Any]]:
        docs = with_retries(lambda: list(self.db.collection(self.collection).stream()),
                            "list content markers")
        markers = [doc.to_dict() or {} for doc in docs]
        markers.sort(key=lambda m: str(m.get("last_updated") or ""), reverse=True)
        return markers


__all__ = [
    "CatalogStore",
    "NewsStore",
    "ContentMarkerStore",
    "DISCOVERY_FIELDS",
]
