"""
Record validators.

Every rule is evaluated for every record; nothing short-circuits, so one
pass reports all problems a record has.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urlparse

from catalog_automation.catalog.models import CatalogRecord
from catalog_automation.quality.models import FindingKind, QualityFinding

RATING_MIN = 1.0
RATING_MAX = 5.0
REVIEW_COUNT_MIN = 1
REVIEW_COUNT_MAX = 100000
WEEKLY_USERS_MIN = 100
WEEKLY_USERS_MAX = 2000000

GROWTH_PATTERN = re.compile(r"^[+-]?\d+(?:\.\d+)?%?$")

REQUIRED_TEXT_FIELDS = ("name", "description", "category")


def is_valid_url(value: Optional[str]) -> bool:
    """Absolute http(s) URL with a host."""
    if not value or not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_growth(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(GROWTH_PATTERN.match(value))


def validate_record(record: CatalogRecord) -> List[QualityFinding]:
    """
    Apply schema and range rules to one record.

    Args:
        record: Record to check

    Returns:
        Schema-error and range-warning findings (possibly empty)
    """
    findings: List[QualityFinding] = []

    def add(kind: FindingKind, field: str, detail: str) -> None:
        findings.append(QualityFinding(
            record_id=record.id,
            kind=kind,
            detail=detail,
            field=field,
            record_name=record.name,
        ))

    # Schema rules
    for field_name in REQUIRED_TEXT_FIELDS:
        value = getattr(record, field_name)
        if value is None or not str(value).strip():
            add(FindingKind.SCHEMA_ERROR, field_name, f"Missing {field_name}")

    if not is_valid_url(record.website):
        add(FindingKind.SCHEMA_ERROR, "website", f"Invalid website URL: {record.website!r}")

    if record.rating is None:
        add(FindingKind.SCHEMA_ERROR, "rating", "Missing rating")
    elif not RATING_MIN <= record.rating <= RATING_MAX:
        add(FindingKind.SCHEMA_ERROR, "rating", f"Invalid rating: {record.rating}")

    # Range rules
    if record.review_count is None:
        add(FindingKind.RANGE_WARNING, "review_count", "Missing review count")
    elif not REVIEW_COUNT_MIN <= record.review_count <= REVIEW_COUNT_MAX:
        add(FindingKind.RANGE_WARNING, "review_count", f"Unusual review count: {record.review_count}")

    if record.weekly_users is None:
        add(FindingKind.RANGE_WARNING, "weekly_users", "Missing weekly users")
    elif not WEEKLY_USERS_MIN <= record.weekly_users <= WEEKLY_USERS_MAX:
        add(FindingKind.RANGE_WARNING, "weekly_users", f"Unusual weekly users: {record.weekly_users}")

    if not is_valid_growth(record.growth):
        add(FindingKind.RANGE_WARNING, "growth", f"Malformed growth: {record.growth!r}")

    return findings


__all__ = [
    "validate_record",
    "is_valid_url",
    "is_valid_growth",
    "GROWTH_PATTERN",
]
