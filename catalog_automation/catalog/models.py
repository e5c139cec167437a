"""
Catalog Models - Data models for catalog records.

Firestore Collections:
- tools/{recordId}: Catalog records
- ai_news/{newsId}: News items (secondary content stream)
- content_cache/{contentType}: Last-updated markers
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

DEFAULT_SOURCE = "Manual"


class FixOutcome(str, Enum):
    """Result of a per-record fix write."""
    APPLIED = "applied"
    MISSING = "missing"    # Record deleted between read and write
    CHANGED = "changed"    # Record modified between read and write


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    if number is None:
        return None
    return int(number)


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass
class CatalogRecord:
    """
    One entry in the tools directory.

    Numeric fields are Optional: a malformed stored value is kept as None so
    the quality engine can flag it instead of the read failing.
    """
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    weekly_users: Optional[int] = None
    growth: Optional[str] = None
    trending_score: Optional[float] = None
    data_quality_fixed: bool = False
    auto_fixed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    source: str = DEFAULT_SOURCE
    pricing: Optional[str] = None
    logo: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Firestore-compatible dict."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "website": self.website,
            "rating": self.rating,
            "review_count": self.review_count,
            "weekly_users": self.weekly_users,
            "growth": self.growth,
            "trending_score": self.trending_score,
            "data_quality_fixed": self.data_quality_fixed,
            "auto_fixed_at": self.auto_fixed_at,
            "updated_at": self.updated_at,
            "source": self.source,
            "pricing": self.pricing,
            "logo": self.logo,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> "CatalogRecord":
        """Create from Firestore dict. Accepts snake_case and camelCase keys."""
        return cls(
            id=doc_id or _to_str(data.get("id")) or "",
            name=_to_str(data.get("name")),
            description=_to_str(data.get("description")),
            category=_to_str(data.get("category")),
            website=_to_str(data.get("website")),
            rating=_to_float(data.get("rating")),
            review_count=_to_int(_pick(data, "review_count", "reviewCount")),
            weekly_users=_to_int(_pick(data, "weekly_users", "weeklyUsers")),
            growth=_to_str(data.get("growth")),
            trending_score=_to_float(_pick(data, "trending_score", "trendingScore")),
            data_quality_fixed=bool(data.get("data_quality_fixed", False)),
            auto_fixed_at=parse_datetime(data.get("auto_fixed_at")),
            updated_at=parse_datetime(_pick(data, "updated_at", "updatedAt")),
            source=_to_str(data.get("source")) or DEFAULT_SOURCE,
            pricing=_to_str(data.get("pricing")),
            logo=_to_str(data.get("logo")),
            created_at=parse_datetime(_pick(data, "created_at", "createdAt")),
        )


@dataclass
class NewsItem:
    """News article from the secondary content stream."""
    id: str
    title: str
    url: Optional[str] = None
    source: str = "Unknown"
    category: str = "General"
    summary: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "category": self.category,
            "summary": self.summary,
            "published_at": self.published_at,
            "created_at": self.created_at,
        })
        return data


__all__ = [
    "CatalogRecord",
    "NewsItem",
    "FixOutcome",
    "DEFAULT_SOURCE",
    "parse_datetime",
]
