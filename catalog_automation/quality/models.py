"""
Quality Models - Findings, pass configuration and pass report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from catalog_automation.exceptions import (
    MockDataSuspected,
    RangeWarning,
    RecordFindingError,
    ValidationError,
)


class FindingKind(str, Enum):
    """Quality finding taxonomy."""
    SCHEMA_ERROR = "schema-error"              # Blocks the record from counting as valid
    RANGE_WARNING = "range-warning"            # Correctable
    MOCK_DATA_SUSPECTED = "mock-data-suspected"  # Correctable

    @property
    def exception_class(self) -> Type[RecordFindingError]:
        return _EXCEPTION_BY_KIND[self]


_EXCEPTION_BY_KIND = {
    FindingKind.SCHEMA_ERROR: ValidationError,
    FindingKind.RANGE_WARNING: RangeWarning,
    FindingKind.MOCK_DATA_SUSPECTED: MockDataSuspected,
}


@dataclass
class QualityFinding:
    """One rule violation on one record."""
    record_id: str
    kind: FindingKind
    detail: str
    field: Optional[str] = None
    record_name: Optional[str] = None
    suggestion: Optional[Dict[str, Any]] = None

    def to_exception(self) -> RecordFindingError:
        return self.kind.exception_class(self.record_id, self.detail, field=self.field)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "record_id": self.record_id,
            "kind": self.kind.value,
            "detail": self.detail,
        }
        if self.field:
            data["field"] = self.field
        if self.record_name:
            data["name"] = self.record_name
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


@dataclass
class QualityConfig:
    """Policy for one quality pass."""
    auto_fix: bool = False
    max_mock_data_pct: float = 5
    max_suspicious_pct: float = 10
    min_quality_score: float = 90
    max_errors_per_record: int = 2


@dataclass
class QualityReport:
    """
    Outcome of one quality pass over the catalog.

    Percentages are derived from the counters; the report itself is never
    persisted.
    """
    total_records: int = 0
    valid_records: int = 0
    clean_records: int = 0
    records_with_errors: int = 0
    records_with_warnings: int = 0
    mock_data_records: int = 0
    suspicious_records: int = 0
    quality_score: int = 100
    findings: List[QualityFinding] = field(default_factory=list)

    suggestions: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    records_fixed: int = 0
    records_skipped: int = 0
    fix_errors: int = 0
    alerts: List[str] = field(default_factory=list)
    fingerprint_version: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def mock_data_pct(self) -> float:
        if self.total_records == 0:
            return 0.0
        return self.mock_data_records / self.total_records * 100

    @property
    def suspicious_pct(self) -> float:
        if self.total_records == 0:
            return 0.0
        return self.suspicious_records / self.total_records * 100

    def findings_for(self, record_id: str) -> List[QualityFinding]:
        return [f for f in self.findings if f.record_id == record_id]

    def findings_of_kind(self, kind: FindingKind) -> List[QualityFinding]:
        return [f for f in self.findings if f.kind == kind]

    def summary(self) -> Dict[str, Any]:
        """Counters only, for logs and CLI output."""
        return {
            "total_records": self.total_records,
            "valid_records": self.valid_records,
            "clean_records": self.clean_records,
            "records_with_errors": self.records_with_errors,
            "records_with_warnings": self.records_with_warnings,
            "mock_data_records": self.mock_data_records,
            "suspicious_records": self.suspicious_records,
            "quality_score": self.quality_score,
            "mock_data_pct": round(self.mock_data_pct, 1),
            "suspicious_pct": round(self.suspicious_pct, 1),
            "suggestions": len(self.suggestions),
            "records_fixed": self.records_fixed,
            "records_skipped": self.records_skipped,
            "fix_errors": self.fix_errors,
            "alerts": list(self.alerts),
            "fingerprint_version": self.fingerprint_version,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary()
        data["findings"] = [f.to_dict() for f in self.findings]
        return data


__all__ = [
    "FindingKind",
    "QualityFinding",
    "QualityConfig",
    "QualityReport",
]
