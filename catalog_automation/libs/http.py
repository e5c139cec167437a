"""
HTTP client for discovery feeds, revalidation and alert webhooks.

Retries connection errors and retryable statuses with exponential backoff;
any other 4xx/5xx raises requests.HTTPError on the first response.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import requests

from catalog_automation import __version__

logger = logging.getLogger(__name__)

JsonBody = Union[Dict[str, Any], List[Any]]

USER_AGENT = f"catalog-automation/{__version__}"


@dataclass
class HttpClient:
    base_url: str = ""
    api_key: Optional[str] = None
    bearer_token: Optional[str] = None
    timeout_seconds: int = 30
    max_retries: int = 3
    backoff_factor: float = 0.5
    retry_statuses: Sequence[int] = (429, 500, 502, 503, 504)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None,
            headers: Optional[Dict[str, str]] = None) -> JsonBody:
        return self.request("GET", path, params=params or {}, headers=headers)

    def post(self, path: str, json_body: Optional[JsonBody] = None,
             headers: Optional[Dict[str, str]] = None) -> JsonBody:
        body = json_body if json_body is not None else {}
        return self.request("POST", path, json=body, headers=headers)

    def request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                **kwargs: Any) -> JsonBody:
        """Send one request, retrying transient failures."""
        url = self.url_for(path)
        last_error: Optional[requests.RequestException] = None

        for attempt in range(self.max_retries + 1):
            try:
                resp = requests.request(
                    method,
                    url,
                    headers=self._headers(headers),
                    timeout=self.timeout_seconds,
                    **kwargs,
                )
            except requests.RequestException as e:
                last_error = e
            else:
                if resp.status_code not in self.retry_statuses:
                    return self._decode(resp)
                last_error = requests.HTTPError(f"HTTP {resp.status_code}", response=resp)

            if attempt < self.max_retries:
                delay = self.backoff_factor * (2 ** attempt)
                logger.warning("%s %s failed (attempt %d/%d): %s; retrying in %.1fs",
                               method, url, attempt + 1, self.max_retries + 1, last_error, delay)
                time.sleep(delay)

        raise last_error

    def url_for(self, path: str) -> str:
        """Absolute URLs pass through; relative paths join base_url."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _decode(resp: requests.Response) -> JsonBody:
        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}

        if resp.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            message = error if isinstance(error, str) else (resp.text or f"HTTP {resp.status_code}")
            raise requests.HTTPError(message, response=resp)
        return data


__all__ = ["HttpClient", "JsonBody"]
