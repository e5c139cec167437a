"""
Watchdog - Housekeeping for the automation collections.

- Expired lease locks: a replica that crashes mid-run leaves its lock
  behind. The lease lapses on its own, but the document keeps advertising a
  run that no longer exists until it is deleted here.
- Stale reports: job kinds whose latest report is older than the staleness
  window are listed so an operator can see which automation has stopped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from catalog_automation import config
from catalog_automation.exceptions import PersistenceError
from catalog_automation.firestore_client import get_db
from catalog_automation.jobs.models import TRIGGERABLE_KINDS
from catalog_automation.jobs.reports import ReportStore

logger = logging.getLogger(__name__)

MAX_LOCKS_PER_SWEEP = 100


def cleanup_expired_locks(db: Optional[firestore.Client] = None, dry_run: bool = True) -> Dict[str, Any]:
    """
    Delete automation locks whose lease has expired.

    Args:
        db: Firestore client (defaults to the shared client)
        dry_run: If True, only list the locks that would be deleted

    Returns:
        {found, cleaned, errors, locks: [{kind, run_id, owner_id, expires_at}]}
    """
    db = db or get_db()
    now = datetime.now(timezone.utc)
    expired = (
        db.collection(config.LOCKS_COLLECTION)
        .where("expires_at", "<", now)
        .limit(MAX_LOCKS_PER_SWEEP)
        .stream()
    )

    locks: List[Dict[str, Any]] = []
    cleaned = errors = 0
    for doc in expired:
        lock = doc.to_dict() or {}
        locks.append({
            "kind": doc.id,
            "run_id": lock.get("run_id"),
            "owner_id": lock.get("owner_id"),
            "expires_at": str(lock.get("expires_at")),
        })
        if dry_run:
            continue

        try:
            doc.reference.delete()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error("Could not delete expired %s lock: %s", doc.id, e)
            errors += 1
        else:
            cleaned += 1

    logger.info("Watchdog: %d expired lock(s), %d deleted", len(locks), cleaned)
    return {
        "found": len(locks),
        "cleaned": cleaned,
        "errors": errors,
        "locks": locks,
        "dry_run": dry_run,
    }


def find_stale_reports(report_store: Any, now: Optional[datetime] = None,
                       max_age_hours: int = config.STALE_REPORT_HOURS) -> List[Dict[str, Any]]:
    """Job kinds whose latest report is missing or older than max_age_hours."""
    now = now or datetime.now(timezone.utc)
    stale = []
    for kind in TRIGGERABLE_KINDS:
        try:
            report = report_store.get_latest(kind)
        except PersistenceError as e:
            logger.warning("Could not read %s report: %s", kind.value, e)
            continue
        if report is None:
            stale.append({"kind": kind.value, "last_run": None})
        elif report.is_stale(now, max_age_hours):
            stale.append({"kind": kind.value, "last_run": report.timestamp.isoformat()})
    return stale


def run_watchdog(db: Optional[firestore.Client] = None, dry_run: bool = True) -> Dict[str, Any]:
    """Run all watchdog tasks."""
    return {
        "locks": cleanup_expired_locks(db, dry_run=dry_run),
        "stale_reports": find_stale_reports(ReportStore(db)),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dry_run": dry_run,
    }


__all__ = ["cleanup_expired_locks", "find_stale_reports", "run_watchdog"]
