"""
Job Handlers - Bodies of the orchestrator's job kinds.

This module contains handlers for:
- discovery: fetch, normalize and upsert tools and news
- refresh: catalog statistics and trending score recompute
- manual-refresh: mark content types refreshed

Handlers return a RunReport; the orchestrator stamps timestamp and duration
and runs the completion continuation.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from catalog_automation import config
from catalog_automation.exceptions import JobExecutionError, PersistenceError
from catalog_automation.jobs.discovery import DiscoveryProducer, process_news, process_tools
from catalog_automation.jobs.models import JobKind, RunReport, SourceResult
from catalog_automation.trending import score_record

logger = logging.getLogger(__name__)

CONTENT_TYPES = ("tools", "news")


@dataclass
class JobContext:
    """Per-run context handed to a handler."""
    kind: JobKind
    cancel_event: threading.Event = field(default_factory=threading.Event)
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


def compute_catalog_stats(records: List[Any]) -> Dict[str, Any]:
    """Totals and averages over the catalog."""
    ratings = [r.rating for r in records if r.rating is not None]
    return {
        "total_tools": len(records),
        "total_reviews": sum(r.review_count or 0 for r in records),
        "total_users": sum(r.weekly_users or 0 for r in records),
        "categories": len({r.category for r in records if r.category}),
        "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else 0.0,
    }


class JobHandlers:
    """
    Job bodies bound to their collaborators.

    Usage:
        handlers = JobHandlers(CatalogStore(), NewsStore(), HttpDiscoveryProducer())
        report = handlers.for_kind(JobKind.REFRESH)(JobContext(JobKind.REFRESH))
    """

    def __init__(
        self,
        catalog_store: Any,
        news_store: Any,
        producer: Optional[DiscoveryProducer] = None,
        max_tools: int = config.MAX_TOOLS_PER_RUN,
    ):
        self.catalog_store = catalog_store
        self.news_store = news_store
        self.producer = producer
        self.max_tools = max_tools

    def for_kind(self, kind: JobKind) -> Callable[[JobContext], RunReport]:
        handlers = {
            JobKind.DISCOVERY: self.discovery,
            JobKind.REFRESH: self.refresh,
            JobKind.MANUAL_REFRESH: self.manual_refresh,
        }
        return handlers[kind]

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    def discovery(self, ctx: JobContext) -> RunReport:
        report = RunReport(job_kind=JobKind.DISCOVERY)
        report.tools = self._discover_tools(ctx, report)
        report.news = self._discover_news(ctx)

        report.errors = [f"tools: {e}" for e in report.tools.errors] + \
                        [f"news: {e}" for e in report.news.errors]
        report.success = report.tools.success and report.news.success
        report.content_types = [
            name for name, result in (("tools", report.tools), ("news", report.news))
            if result.success
        ]
        report.message = (
            f"Discovered {report.items_found} tools "
            f"({report.items_added} new, {report.items_updated} updated)"
        )
        return report

    def _discover_tools(self, ctx: JobContext, report: RunReport) -> SourceResult:
        result = SourceResult()
        if self.producer is None:
            result.success = False
            result.errors.append("No discovery producer configured")
            return result

        try:
            raw_tools = self.producer.fetch_tools()
        except JobExecutionError as e:
            result.success = False
            result.errors.append(str(e))
            return result

        records = process_tools(raw_tools, self.max_tools)
        report.items_found = len(records)
        report.sources = dict(Counter(r.source for r in records))
        report.categories = dict(Counter(r.category for r in records if r.category))

        for record in records:
            if ctx.cancelled:
                result.success = False
                result.errors.append("Cancelled before all tools were saved")
                break
            try:
                created = self.catalog_store.upsert_record(record)
            except PersistenceError as e:
                result.errors.append(f"{record.id}: {e}")
                continue
            if created:
                report.items_added += 1
            else:
                report.items_updated += 1

        result.count = report.items_added + report.items_updated
        if records and result.count == 0:
            result.success = False
        return result

    def _discover_news(self, ctx: JobContext) -> SourceResult:
        result = SourceResult()
        if self.producer is None:
            result.success = False
            result.errors.append("No discovery producer configured")
            return result
        if ctx.cancelled:
            result.success = False
            result.errors.append("Cancelled before news discovery")
            return result

        try:
            items = process_news(self.producer.fetch_news())
            added, updated = self.news_store.upsert_items(items)
        except (JobExecutionError, PersistenceError) as e:
            result.success = False
            result.errors.append(str(e))
            return result

        result.count = added + updated
        return result

    # =========================================================================
    # REFRESH
    # =========================================================================

    def refresh(self, ctx: JobContext) -> RunReport:
        records = self.catalog_store.list_records()
        stats = compute_catalog_stats(records)

        report = RunReport(job_kind=JobKind.REFRESH, items_found=len(records), stats=stats)
        report.categories = dict(Counter(r.category for r in records if r.category))
        report.sources = dict(Counter(r.source for r in records))

        if ctx.cancelled:
            report.success = False
            report.errors.append("Cancelled before trending scores were written")
            report.tools = SourceResult(success=False, count=0, errors=list(report.errors))
            return report

        scores = {}
        for record in records:
            derived = score_record(record)
            if record.trending_score != derived:
                scores[record.id] = derived
        report.items_updated = self.catalog_store.update_trending_scores(scores) if scores else 0

        report.tools = SourceResult(success=True, count=len(records))
        report.content_types = ["tools"]
        report.message = (
            f"Refreshed {stats['total_tools']} tools in {stats['categories']} categories, "
            f"{report.items_updated} trending scores updated"
        )
        return report

    # =========================================================================
    # MANUAL REFRESH
    # =========================================================================

    def manual_refresh(self, ctx: JobContext) -> RunReport:
        content_type = ctx.params.get("type") or "all"
        if content_type == "all":
            content_types = list(CONTENT_TYPES)
        elif content_type in CONTENT_TYPES:
            content_types = [content_type]
        else:
            return RunReport(
                job_kind=JobKind.MANUAL_REFRESH,
                success=False,
                errors=[f"Unknown content type: {content_type}"],
                message="Manual refresh rejected",
            )

        report = RunReport(job_kind=JobKind.MANUAL_REFRESH, content_types=content_types)
        if "tools" in content_types:
            report.tools = SourceResult(success=True, count="refreshed")
        if "news" in content_types:
            report.news = SourceResult(success=True, count="refreshed")
        report.message = f"{content_type} content refreshed"
        return report


__all__ = ["JobHandlers", "JobContext", "compute_catalog_stats", "CONTENT_TYPES"]
