"""Shared client libraries."""

from catalog_automation.libs.http import HttpClient

__all__ = ["HttpClient"]
