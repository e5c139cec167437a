"""
Structured lifecycle logging.

Events are logged as single-line JSON for Cloud Logging compatibility.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("catalog_automation.events")

INSTANCE_ID = os.getenv("INSTANCE_ID", f"instance-{uuid.uuid4().hex[:8]}")


def log_event(
    event: str,
    job_kind: Optional[str] = None,
    duration_ms: Optional[int] = None,
    level: int = logging.INFO,
    **extra: Any,
) -> None:
    """
    Log a structured event.

    Args:
        event: Event name (e.g. "job_started", "lock_contention")
        job_kind: Job kind the event relates to
        duration_ms: Duration for completion events
        level: Logging level
        **extra: Additional JSON-serializable fields
    """
    record = {
        "event": event,
        "instance_id": INSTANCE_ID,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if job_kind:
        record["job_kind"] = job_kind
    if duration_ms is not None:
        record["duration_ms"] = duration_ms

    record.update(extra)

    logger.log(level, json.dumps(record, default=str))


def configure_logging(verbose: bool = False, json_only: bool = False) -> None:
    """Configure root logging for entrypoints."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s" if json_only else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


__all__ = ["log_event", "configure_logging", "INSTANCE_ID"]
