"""
Catalog Package - Catalog record model and store access.

This package provides:
- models: CatalogRecord, NewsItem, FixOutcome
- store: Firestore-backed catalog, news and content marker stores
"""

from catalog_automation.catalog.models import CatalogRecord, FixOutcome, NewsItem
from catalog_automation.catalog.store import (
    CatalogStore,
    ContentMarkerStore,
    NewsStore,
)

__all__ = [
    "CatalogRecord",
    "FixOutcome",
    "NewsItem",
    "CatalogStore",
    "ContentMarkerStore",
    "NewsStore",
]
