"""
Trending Score - Normalized popularity/quality scalar for catalog records.

The score is a bounded weighted sum so one viral record cannot dominate
rankings:

    rating * 0.4
    + min(review_count / 1000, 1) * 0.2
    + min(weekly_users / 10000, 1) * 0.2
    + min(growth / 100, 1) * 0.2

Pure and total: unparseable growth counts as 0, missing numbers count as 0.
The quality engine and every ranking consumer derive the score from here.
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Optional, Union

# Weights
RATING_WEIGHT = 0.4
REVIEW_WEIGHT = 0.2
USER_WEIGHT = 0.2
GROWTH_WEIGHT = 0.2

# Normalization caps
REVIEW_CAP = 1000
USER_CAP = 10000
GROWTH_CAP = 100

_GROWTH_STRIP = re.compile(r"[^0-9.+-]")

Number = Union[int, float]


def parse_growth(growth: Any) -> float:
    """
    Parse a growth string like "+28%" into a float percentage.

    Strips every character that is not a digit, dot or sign before parsing.
    Returns 0.0 when nothing parseable remains.
    """
    if growth is None:
        return 0.0
    if isinstance(growth, bool):
        return 0.0
    if isinstance(growth, (int, float)):
        value = float(growth)
    else:
        cleaned = _GROWTH_STRIP.sub("", str(growth))
        try:
            value = float(cleaned)
        except ValueError:
            return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def _num(value: Optional[Number]) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def calculate_trending_score(
    rating: Optional[Number],
    review_count: Optional[Number],
    weekly_users: Optional[Number],
    growth: Any,
) -> float:
    """
    Calculate the trending score for a record's popularity fields.

    Args:
        rating: Editorial rating (1-5)
        review_count: Number of reviews
        weekly_users: Weekly active users
        growth: Growth percentage string (e.g. "+28%")

    Returns:
        Score rounded to 2 decimal places
    """
    score = (
        _num(rating) * RATING_WEIGHT
        + min(_num(review_count) / REVIEW_CAP, 1.0) * REVIEW_WEIGHT
        + min(_num(weekly_users) / USER_CAP, 1.0) * USER_WEIGHT
        + min(parse_growth(growth) / GROWTH_CAP, 1.0) * GROWTH_WEIGHT
    )
    return round(score, 2)


def score_record(record: Any) -> float:
    """Score a CatalogRecord (or any object/dict with the four fields)."""
    if isinstance(record, dict):
        return calculate_trending_score(
            record.get("rating"),
            record.get("review_count"),
            record.get("weekly_users"),
            record.get("growth"),
        )
    return calculate_trending_score(
        record.rating, record.review_count, record.weekly_users, record.growth,
    )


# =============================================================================
# RANKING HELPERS
# =============================================================================

def get_trending_records(records: Iterable[Any], limit: int = 12) -> List[Any]:
    """Records sorted by trending score, highest first."""
    ranked = sorted(records, key=score_record, reverse=True)
    return ranked[:limit]


def get_trending_categories(records: Iterable[Any], limit: int = 8) -> List[Dict[str, Any]]:
    """
    Aggregate trending stats per category.

    Returns:
        List of {name, growth, tool_count, total_score}, sorted by total_score
    """
    stats: Dict[str, Dict[str, float]] = {}
    for record in records:
        category = _field(record, "category") or "Uncategorized"
        entry = stats.setdefault(category, {"count": 0, "growth": 0.0, "score": 0.0})
        entry["count"] += 1
        entry["growth"] += parse_growth(_field(record, "growth"))
        entry["score"] += score_record(record)

    categories = [
        {
            "name": name,
            "growth": f"{round(entry['growth'] / entry['count']):+d}%",
            "tool_count": int(entry["count"]),
            "total_score": round(entry["score"], 2),
        }
        for name, entry in stats.items()
    ]
    categories.sort(key=lambda c: c["total_score"], reverse=True)
    return categories[:limit]


def get_trending_insights(records: Iterable[Any]) -> Dict[str, Any]:
    """Most popular, fastest growing, highest rated and most reviewed records."""
    items = list(records)
    if not items:
        return {
            "most_popular": None,
            "fastest_growing": None,
            "highest_rated": None,
            "most_reviewed": None,
        }
    return {
        "most_popular": max(items, key=lambda r: _num(_field(r, "weekly_users"))),
        "fastest_growing": max(items, key=lambda r: parse_growth(_field(r, "growth"))),
        "highest_rated": max(items, key=lambda r: _num(_field(r, "rating"))),
        "most_reviewed": max(items, key=lambda r: _num(_field(r, "review_count"))),
    }


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


__all__ = [
    "calculate_trending_score",
    "parse_growth",
    "score_record",
    "get_trending_records",
    "get_trending_categories",
    "get_trending_insights",
]
