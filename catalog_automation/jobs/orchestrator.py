"""
Job Orchestrator - Lifecycle of automation runs.

Request-path operations (trigger_run, get_status, toggle_auto_refresh)
only start work or read state; they never wait on a run.

Completion continuation, once per run:
1. Persist the RunReport (replaces the previous report for the kind)
2. Invalidate catalog views for the refreshed content
3. Publish one broadcast event
4. Touch the content_cache marker per refreshed content type
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from catalog_automation import config
from catalog_automation.exceptions import (
    BroadcastError,
    InvalidJobKindError,
    PersistenceError,
)
from catalog_automation.jobs.handlers import JobContext, JobHandlers
from catalog_automation.jobs.invalidation import CATALOG_VIEWS, CacheInvalidator, tags_for
from catalog_automation.jobs.models import (
    NO_DATA,
    TRIGGERABLE_KINDS,
    JobKind,
    JobState,
    RunAccepted,
    RunReport,
    RunStatus,
)
from catalog_automation.jobs.registry import TaskHandle, TaskOutcome, TaskRegistry
from catalog_automation.jobs.settings import AUTO_REFRESH_ENABLED
from catalog_automation.logging_utils import log_event

logger = logging.getLogger(__name__)

START_MESSAGES = {
    JobKind.DISCOVERY: "Automation started successfully. Data will be synchronized across all pages.",
    JobKind.REFRESH: "Data refresh started successfully. All pages will be updated.",
    JobKind.MANUAL_REFRESH: "Content refresh started successfully.",
}

BROADCAST_TYPES = {
    JobKind.DISCOVERY: "full-sync",
}


class JobOrchestrator:
    """
    Starts runs, persists their reports and exposes their status.

    Usage:
        orchestrator = JobOrchestrator(ReportStore(), SettingsStore(), handlers)
        orchestrator.trigger_run("discovery")
        status = orchestrator.get_status("discovery")
    """

    def __init__(
        self,
        report_store: Any,
        settings_store: Any,
        handlers: JobHandlers,
        registry: Optional[TaskRegistry] = None,
        invalidator: Optional[CacheInvalidator] = None,
        broadcaster: Optional[Any] = None,
        marker_store: Optional[Any] = None,
        run_timeout_secs: Optional[float] = config.RUN_TIMEOUT_SECS,
        auto_refresh_interval_secs: float = config.AUTO_REFRESH_INTERVAL_SECS,
        stale_hours: int = config.STALE_REPORT_HOURS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.report_store = report_store
        self.settings_store = settings_store
        self.handlers = handlers
        self.registry = registry or TaskRegistry()
        self.invalidator = invalidator or CacheInvalidator()
        self.broadcaster = broadcaster
        self.marker_store = marker_store
        self.run_timeout_secs = run_timeout_secs
        self.auto_refresh_interval_secs = auto_refresh_interval_secs
        self.stale_hours = stale_hours
        self.clock = clock
        # Last report write failure per kind, cleared by the next good write
        self._persist_errors: Dict[JobKind, str] = {}

    # =========================================================================
    # RUNS
    # =========================================================================

    def trigger_run(self, kind: Union[str, JobKind], params: Optional[Dict[str, Any]] = None) -> RunAccepted:
        """
        Start a run of the given kind in the background.

        A second request while the kind is running starts nothing and
        reports started=False.

        Raises:
            InvalidJobKindError: Unknown or non-triggerable kind
        """
        kind = JobKind.parse(kind)
        if kind not in TRIGGERABLE_KINDS:
            raise InvalidJobKindError(f"Job kind {kind.value!r} cannot be triggered directly")

        handler = self.handlers.for_kind(kind)
        params = dict(params or {})

        def body(handle: TaskHandle) -> RunReport:
            return handler(JobContext(kind=kind, cancel_event=handle.cancel_event, params=params))

        handle = self.registry.submit(
            kind.value,
            body,
            on_complete=lambda outcome: self._complete(kind, outcome),
            timeout_secs=self.run_timeout_secs,
        )

        if handle is None:
            return RunAccepted(kind=kind, message=f"{kind.value} run already in progress",
                               started=False, timestamp=self.clock())

        log_event("run_accepted", job_kind=kind.value, run_id=handle.run_id)
        return RunAccepted(kind=kind, message=START_MESSAGES[kind], started=True,
                           timestamp=self.clock())

    def _complete(self, kind: JobKind, outcome: TaskOutcome) -> RunReport:
        report = self._build_report(kind, outcome)

        try:
            self.report_store.save(report)
            self._persist_errors.pop(kind, None)
        except PersistenceError as e:
            self._persist_errors[kind] = str(e)
            logger.error("Could not persist %s report: %s", kind.value, e)

        if report.content_types:
            self.invalidator.invalidate(CATALOG_VIEWS, tags_for("news" in report.content_types))

        self._broadcast(kind, report)

        if self.marker_store is not None:
            for content_type in report.content_types:
                try:
                    self.marker_store.touch(content_type, updated_by=kind.value, when=report.timestamp)
                except PersistenceError as e:
                    logger.warning("Could not update %s marker: %s", content_type, e)

        log_event(
            "run_finished",
            job_kind=kind.value,
            duration_ms=report.duration_ms,
            run_id=outcome.run_id,
            success=report.success,
            timed_out=report.timed_out,
            errors=len(report.errors),
        )
        return report

    def _build_report(self, kind: JobKind, outcome: TaskOutcome) -> RunReport:
        if outcome.timed_out:
            report = RunReport(job_kind=kind, success=False, timed_out=True,
                               errors=[f"Run exceeded {self.run_timeout_secs}s timeout"],
                               message="Run timed out")
        elif outcome.error is not None:
            report = RunReport(job_kind=kind, success=False,
                               errors=[f"{type(outcome.error).__name__}: {outcome.error}"],
                               message="Run failed")
        elif isinstance(outcome.result, RunReport):
            report = outcome.result
        else:
            report = RunReport(job_kind=kind, success=False,
                               errors=["Handler returned no report"])

        report.timestamp = self.clock()
        report.duration_ms = outcome.duration_ms
        return report

    def _broadcast(self, kind: JobKind, report: RunReport) -> None:
        if self.broadcaster is None:
            return
        try:
            self.broadcaster.publish(
                BROADCAST_TYPES.get(kind, kind.value),
                report.message or f"{kind.value} run finished",
                timestamp=report.timestamp,
            )
        except BroadcastError as e:
            logger.warning("Broadcast for %s failed: %s", kind.value, e)
        except Exception as e:
            logger.warning("Broadcast for %s failed unexpectedly: %s", kind.value, e, exc_info=True)

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self, kind: Union[str, JobKind]) -> RunStatus:
        """
        Status from the last persisted report for the kind.

        An in-flight run never replaces the reported report; it only sets
        running=True.
        """
        kind = JobKind.parse(kind)
        running = self.registry.is_running(kind.value)

        try:
            report = self.report_store.get_latest(kind)
        except PersistenceError as e:
            return RunStatus(kind=kind, state="error", running=running, error=str(e))

        if report is None:
            status = RunStatus(kind=kind, state=NO_DATA, running=running)
        else:
            status = RunStatus(
                kind=kind,
                state=report.state.value,
                report=report,
                stale=report.is_stale(self.clock(), self.stale_hours),
                running=running,
            )

        persist_error = self._persist_errors.get(kind)
        if persist_error:
            status.state = JobState.FAILED.value
            status.error = persist_error
        return status

    def get_overview(self) -> Dict[str, Any]:
        """Dashboard view of the latest discovery run and settings."""
        status = self.get_status(JobKind.DISCOVERY)
        if status.state == "error":
            raise PersistenceError(status.error or "Report store unavailable")

        overview: Dict[str, Any] = {
            "status": NO_DATA if status.report is None else JobState.COMPLETED.value,
            "settings": {"autoRefreshEnabled": self.auto_refresh_enabled()},
            "timestamp": self.clock().isoformat(),
            "stale": status.stale,
            "running": status.running,
        }
        report = status.report
        if report is not None:
            overview.update({
                "lastRun": report.timestamp.isoformat(),
                "success": report.success,
                "toolsFound": report.items_found,
                "summary": {
                    "newTools": report.items_added,
                    "updatedTools": report.items_updated,
                    "errors": len(report.errors),
                },
                "sources": report.sources,
                "categories": report.categories,
            })
        return overview

    # =========================================================================
    # AUTO-REFRESH
    # =========================================================================

    def auto_refresh_enabled(self) -> bool:
        return bool(self.settings_store.get(AUTO_REFRESH_ENABLED, False))

    def toggle_auto_refresh(self, enabled: bool) -> Dict[str, Any]:
        """Persist the flag and start or stop the recurring refresh."""
        enabled = bool(enabled)
        self.settings_store.set(AUTO_REFRESH_ENABLED, enabled)

        if enabled:
            self._start_auto_refresh()
        else:
            self.registry.cancel(JobKind.AUTO_REFRESH.value)

        log_event("auto_refresh_toggled", job_kind=JobKind.AUTO_REFRESH.value, enabled=enabled)
        return {
            "message": f"Auto-refresh {'enabled' if enabled else 'disabled'}",
            "enabled": enabled,
            "timestamp": self.clock().isoformat(),
        }

    def get_settings(self) -> Dict[str, Any]:
        return {
            "settings": self.settings_store.list_settings(),
            "timestamp": self.clock().isoformat(),
        }

    def _start_auto_refresh(self) -> Optional[TaskHandle]:
        existing = self.registry.get_handle(JobKind.AUTO_REFRESH.value)
        if existing is not None:
            if not existing.cancelled:
                return existing
            # A disabled loop is still winding down
            existing.wait(timeout=5)

        return self.registry.submit(JobKind.AUTO_REFRESH.value, self._auto_refresh_loop)

    def _auto_refresh_loop(self, handle: TaskHandle) -> int:
        """Trigger a refresh now and then every interval until cancelled."""
        triggered = 0
        while not handle.cancel_event.is_set():
            accepted = self.trigger_run(JobKind.REFRESH)
            if accepted.started:
                triggered += 1
            if handle.cancel_event.wait(self.auto_refresh_interval_secs):
                break
        return triggered

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Resume the auto-refresh loop when the persisted flag is on."""
        try:
            if self.auto_refresh_enabled():
                self._start_auto_refresh()
                logger.info("Auto-refresh resumed")
        except PersistenceError as e:
            logger.warning("Could not read auto-refresh setting: %s", e)

    def shutdown(self, wait: bool = False) -> None:
        self.registry.shutdown(wait=wait)


def build_orchestrator(db: Optional[Any] = None) -> JobOrchestrator:
    """Wire an orchestrator against Firestore and the configured endpoints."""
    from catalog_automation.catalog.store import CatalogStore, ContentMarkerStore, NewsStore
    from catalog_automation.jobs.broadcast import FirestoreBroadcaster
    from catalog_automation.jobs.discovery import HttpDiscoveryProducer
    from catalog_automation.jobs.locks import FirestoreLeaseLock
    from catalog_automation.jobs.reports import ReportStore
    from catalog_automation.jobs.settings import SettingsStore

    handlers = JobHandlers(CatalogStore(db), NewsStore(db), HttpDiscoveryProducer())
    lease_lock = FirestoreLeaseLock(db) if config.LEASE_LOCK_ENABLED else None
    return JobOrchestrator(
        report_store=ReportStore(db),
        settings_store=SettingsStore(db),
        handlers=handlers,
        registry=TaskRegistry(lease_lock=lease_lock),
        broadcaster=FirestoreBroadcaster(db),
        marker_store=ContentMarkerStore(db),
    )


__all__ = ["JobOrchestrator", "build_orchestrator", "START_MESSAGES"]
