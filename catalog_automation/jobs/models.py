"""
Job Models - Data models for the automation orchestrator.

Firestore Collections:
- automation_reports/{jobKind}: Latest run report per job kind
- automation_settings/{key}: Orchestrator settings
- automation_locks/{jobKind}: Cross-replica lease locks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from catalog_automation.catalog.models import parse_datetime
from catalog_automation.exceptions import InvalidJobKindError

NO_DATA = "no-data"


class JobKind(str, Enum):
    """Orchestrator job kinds."""
    DISCOVERY = "discovery"            # Full discovery (tools + news)
    REFRESH = "refresh"                # Stats + trending recompute
    MANUAL_REFRESH = "manual-refresh"  # Mark content types refreshed
    AUTO_REFRESH = "auto-refresh"      # Recurring refresh loop

    @classmethod
    def parse(cls, value: Union[str, "JobKind"]) -> "JobKind":
        if isinstance(value, JobKind):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidJobKindError(f"Unknown job kind: {value!r}") from None


# Kinds startable through trigger_run; auto-refresh is driven by the toggle
TRIGGERABLE_KINDS = (JobKind.DISCOVERY, JobKind.REFRESH, JobKind.MANUAL_REFRESH)


class JobState(str, Enum):
    """Per-kind lifecycle state."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SourceResult:
    """Outcome for one content source within a run."""
    success: bool = True
    count: Union[int, str] = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "count": self.count,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["SourceResult"]:
        if not data:
            return None
        return cls(
            success=bool(data.get("success", False)),
            count=data.get("count", 0),
            errors=list(data.get("errors") or []),
        )


@dataclass
class RunReport:
    """
    Outcome of one completed run.

    Written once per run and replaces the previous report for the same kind.
    """
    job_kind: JobKind
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    items_found: int = 0
    items_added: int = 0
    items_updated: int = 0
    errors: List[str] = field(default_factory=list)
    duration_ms: int = 0

    tools: Optional[SourceResult] = None
    news: Optional[SourceResult] = None
    sources: Dict[str, int] = field(default_factory=dict)
    categories: Dict[str, int] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)
    content_types: List[str] = field(default_factory=list)
    message: Optional[str] = None
    timed_out: bool = False

    @property
    def state(self) -> JobState:
        return JobState.COMPLETED if self.success else JobState.FAILED

    def is_stale(self, now: Optional[datetime] = None, max_age_hours: int = 24) -> bool:
        now = now or datetime.now(timezone.utc)
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return now - timestamp > timedelta(hours=max_age_hours)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Firestore-compatible dict."""
        data: Dict[str, Any] = {
            "type": self.job_kind.value,
            "timestamp": self.timestamp,
            "success": self.success,
            "items_found": self.items_found,
            "items_added": self.items_added,
            "items_updated": self.items_updated,
            "errors": list(self.errors),
            "duration": self.duration_ms,
            "sources": dict(self.sources),
            "categories": dict(self.categories),
            "stats": dict(self.stats),
            "content_types": list(self.content_types),
            "message": self.message,
            "timed_out": self.timed_out,
        }
        if self.tools is not None:
            data["tools"] = self.tools.to_dict()
        if self.news is not None:
            data["news"] = self.news.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunReport":
        """Create from Firestore dict."""
        return cls(
            job_kind=JobKind.parse(data.get("type", JobKind.DISCOVERY.value)),
            timestamp=parse_datetime(data.get("timestamp")) or datetime.now(timezone.utc),
            success=bool(data.get("success", True)),
            items_found=int(data.get("items_found", 0) or 0),
            items_added=int(data.get("items_added", 0) or 0),
            items_updated=int(data.get("items_updated", 0) or 0),
            errors=list(data.get("errors") or []),
            duration_ms=int(data.get("duration", 0) or 0),
            tools=SourceResult.from_dict(data.get("tools")),
            news=SourceResult.from_dict(data.get("news")),
            sources=dict(data.get("sources") or {}),
            categories=dict(data.get("categories") or {}),
            stats=dict(data.get("stats") or {}),
            content_types=list(data.get("content_types") or []),
            message=data.get("message"),
            timed_out=bool(data.get("timed_out", False)),
        )


@dataclass
class RunStatus:
    """Status view for one job kind."""
    kind: JobKind
    state: str = NO_DATA
    report: Optional[RunReport] = None
    stale: bool = False
    running: bool = False
    error: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.report is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "state": self.state,
            "stale": self.stale,
            "running": self.running,
        }
        if self.report is not None:
            report = self.report.to_dict()
            report["timestamp"] = self.report.timestamp.isoformat()
            data["report"] = report
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RunAccepted:
    """Immediate response to trigger_run."""
    kind: JobKind
    message: str
    started: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sync_enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "syncEnabled": self.sync_enabled,
            "kind": self.kind.value,
            "started": self.started,
        }


__all__ = [
    "JobKind",
    "JobState",
    "SourceResult",
    "RunReport",
    "RunStatus",
    "RunAccepted",
    "NO_DATA",
    "TRIGGERABLE_KINDS",
]
