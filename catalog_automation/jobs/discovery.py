"""
Discovery - Upstream producer client and candidate normalization.

The producer is an opaque HTTP feed returning tool candidates and news
items as JSON (a list, or an object wrapping one under "tools", "news",
"items" or "data").
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import requests

from catalog_automation import config
from catalog_automation.catalog.models import CatalogRecord, NewsItem, parse_datetime
from catalog_automation.exceptions import JobExecutionError
from catalog_automation.libs.http import HttpClient

logger = logging.getLogger(__name__)

CATEGORY_KEYWORDS = [
    ("Language", ("chat", "gpt", "language")),
    ("Design", ("image", "art", "design")),
    ("Development", ("code", "development", "programming")),
    ("Productivity", ("productivity", "automation")),
    ("Marketing", ("marketing", "seo", "ads")),
    ("Writing", ("write", "content", "copy")),
    ("Video", ("video", "movie", "animation")),
    ("Audio", ("audio", "music", "voice")),
    ("Data", ("data", "analytics", "insights")),
]
DEFAULT_CATEGORY = "Other"

LOGO_KEYWORDS = [
    ("🤖", ("ai", "bot")),
    ("💬", ("chat", "gpt")),
    ("🎨", ("image", "art")),
    ("💻", ("code", "dev")),
    ("🎬", ("video", "movie")),
    ("🎵", ("audio", "music")),
    ("📊", ("data", "analytics")),
]
DEFAULT_LOGO = "⚡"

_NON_SLUG = re.compile(r"[^a-z0-9]")
_DASHES = re.compile(r"-+")


# =============================================================================
# NORMALIZATION
# =============================================================================

def generate_id(name: str) -> str:
    """Slug id from a display name."""
    slug = _DASHES.sub("-", _NON_SLUG.sub("-", name.lower()))
    return slug.strip("-")


def categorize_tool(name: str, description: str = "") -> str:
    text = f"{name} {description}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def pick_logo(name: str) -> str:
    text = name.lower()
    for logo, keywords in LOGO_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return logo
    return DEFAULT_LOGO


def normalize_tool(raw: Dict[str, Any], default_source: str = "Discovery") -> Optional[CatalogRecord]:
    """
    Turn one raw candidate into a CatalogRecord.

    Candidates without a name or description are dropped (None).
    """
    name = str(raw.get("name") or "").strip()
    description = str(raw.get("description") or "").strip()
    if not name or not description:
        return None

    record_id = generate_id(name)
    if not record_id:
        return None

    data = dict(raw)
    data.update({
        "id": record_id,
        "name": name,
        "description": description,
        "category": raw.get("category") or categorize_tool(name, description),
        "website": raw.get("website") or raw.get("url"),
        "logo": raw.get("logo") or pick_logo(name),
        "source": raw.get("source") or default_source,
    })
    return CatalogRecord.from_dict(data, doc_id=record_id)


def normalize_news(raw: Dict[str, Any]) -> Optional[NewsItem]:
    title = str(raw.get("title") or "").strip()
    if not title:
        return None
    known = {"id", "title", "url", "link", "source", "category", "summary",
             "description", "published_at", "publishedAt"}
    return NewsItem(
        id=str(raw.get("id") or generate_id(title)),
        title=title,
        url=raw.get("url") or raw.get("link"),
        source=raw.get("source") or "Unknown",
        category=raw.get("category") or "General",
        summary=raw.get("summary") or raw.get("description"),
        published_at=parse_datetime(raw.get("published_at") or raw.get("publishedAt")),
        extra={k: v for k, v in raw.items() if k not in known},
    )


def process_tools(raw_tools: Iterable[Dict[str, Any]], max_tools: int = config.MAX_TOOLS_PER_RUN) -> List[CatalogRecord]:
    """Normalize, dedupe by id (first wins) and cap."""
    seen = set()
    processed: List[CatalogRecord] = []
    for raw in raw_tools:
        record = normalize_tool(raw)
        if record is None or record.id in seen:
            continue
        seen.add(record.id)
        processed.append(record)
    return processed[:max_tools]


def process_news(raw_items: Iterable[Dict[str, Any]]) -> List[NewsItem]:
    seen = set()
    items: List[NewsItem] = []
    for raw in raw_items:
        item = normalize_news(raw)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
    return items


# =============================================================================
# PRODUCER
# =============================================================================

class DiscoveryProducer:
    """Source of raw candidates."""

    def fetch_tools(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def fetch_news(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


def _unwrap(body: Any, *keys: str) -> List[Dict[str, Any]]:
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        for key in keys:
            if isinstance(body.get(key), list):
                return [item for item in body[key] if isinstance(item, dict)]
    return []


class HttpDiscoveryProducer(DiscoveryProducer):
    """Fetches candidates from the configured discovery feeds."""

    def __init__(
        self,
        tools_url: Optional[str] = config.DISCOVERY_TOOLS_URL,
        news_url: Optional[str] = config.DISCOVERY_NEWS_URL,
        api_key: Optional[str] = config.DISCOVERY_API_KEY,
        client: Optional[HttpClient] = None,
    ):
        self.tools_url = tools_url
        self.news_url = news_url
        self.client = client or HttpClient(api_key=api_key, timeout_seconds=60)

    def _fetch(self, url: Optional[str], source: str, *keys: str) -> List[Dict[str, Any]]:
        if not url:
            raise JobExecutionError(f"No discovery URL configured for {source}", source=source)
        try:
            body = self.client.get(url)
        except requests.RequestException as e:
            raise JobExecutionError(f"{source} discovery failed: {e}", source=source) from e
        items = _unwrap(body, *keys)
        logger.info("Fetched %d %s candidates", len(items), source)
        return items

    def fetch_tools(self) -> List[Dict[str, Any]]:
        return self._fetch(self.tools_url, "tools", "tools", "items", "data")

    def fetch_news(self) -> List[Dict[str, Any]]:
        return self._fetch(self.news_url, "news", "news", "items", "data")


__all__ = [
    "DiscoveryProducer",
    "HttpDiscoveryProducer",
    "generate_id",
    "categorize_tool",
    "pick_logo",
    "normalize_tool",
    "normalize_news",
    "process_tools",
    "process_news",
]
