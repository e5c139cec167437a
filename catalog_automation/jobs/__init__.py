"""
Jobs Package - Automation orchestrator for discovery and refresh runs.

This package provides:
- models: JobKind, JobState, RunReport, RunStatus, RunAccepted
- reports / settings: Firestore-backed report and settings stores
- registry: Supervised background tasks with per-kind exclusivity
- locks: Cross-replica lease locks with heartbeat renewal
- handlers: Discovery, refresh and manual refresh bodies
- orchestrator: Run lifecycle, status and auto-refresh
- watchdog: Expired lock cleanup
"""

from catalog_automation.jobs.models import (
    JobKind,
    JobState,
    RunAccepted,
    RunReport,
    RunStatus,
    SourceResult,
)
from catalog_automation.jobs.orchestrator import JobOrchestrator
from catalog_automation.jobs.registry import TaskRegistry

__all__ = [
    "JobKind",
    "JobState",
    "RunAccepted",
    "RunReport",
    "RunStatus",
    "SourceResult",
    "JobOrchestrator",
    "TaskRegistry",
]
