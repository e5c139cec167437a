"""
Cache invalidation - revalidates presentation-layer views after a run.

Paths and tags are posted to the site's revalidation webhook. Failures are
logged; a run never fails because a cache could not be invalidated.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import requests

from catalog_automation import config
from catalog_automation.libs.http import HttpClient

logger = logging.getLogger(__name__)

CATALOG_VIEWS = ["/", "/AITools", "/categories"]
TOOLS_TAG = "tools-data"
NEWS_TAG = "news-data"


class CacheInvalidator:
    """POSTs {paths, tags} to the revalidation webhook."""

    def __init__(
        self,
        url: Optional[str] = config.REVALIDATE_URL,
        secret: Optional[str] = config.REVALIDATE_SECRET,
        client: Optional[HttpClient] = None,
    ):
        self.url = url
        self.client = client or HttpClient(bearer_token=secret, max_retries=2)

    def invalidate(self, paths: Sequence[str], tags: Sequence[str] = ()) -> bool:
        """
        Revalidate the given paths and tags.

        Returns:
            True if the webhook accepted the request
        """
        if not self.url:
            logger.info("Revalidation not configured; would invalidate %s %s", list(paths), list(tags))
            return False
        try:
            self.client.post(self.url, json_body={"paths": list(paths), "tags": list(tags)})
        except requests.RequestException as e:
            logger.warning("Cache invalidation failed: %s", e)
            return False
        logger.info("Invalidated %d path(s), tags=%s", len(paths), list(tags))
        return True


def tags_for(news_refreshed: bool) -> List[str]:
    return [TOOLS_TAG, NEWS_TAG] if news_refreshed else [TOOLS_TAG]


__all__ = ["CacheInvalidator", "CATALOG_VIEWS", "TOOLS_TAG", "NEWS_TAG", "tags_for"]
