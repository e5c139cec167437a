"""
Quality Engine - One pass over the catalog.

Pass flow:
1. Read every record
2. Validate (schema + range) and fingerprint each record
3. Synthesize suggestions for correctable records
4. Aggregate counters and the quality score
5. Apply fixes transactionally (auto_fix only)
6. Evaluate thresholds and dispatch alerts

A single malformed, changed or vanished record never aborts the pass.
"""

from __future__ import annotations

import logging
import math
import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from catalog_automation.catalog.models import CatalogRecord, FixOutcome
from catalog_automation.exceptions import PersistenceError
from catalog_automation.logging_utils import log_event
from catalog_automation.quality.alerts import (
    AlertSink,
    LoggingAlertSink,
    build_alert_payload,
    dispatch_alert,
    evaluate_thresholds,
)
from catalog_automation.quality.fingerprints import (
    FINGERPRINT_VERSION,
    MOCK_DATA_FINGERPRINTS,
    match_fingerprints,
    matched_fields,
)
from catalog_automation.quality.models import (
    FindingKind,
    QualityConfig,
    QualityFinding,
    QualityReport,
)
from catalog_automation.quality.suggestions import SuggestionGenerator
from catalog_automation.quality.validators import validate_record

logger = logging.getLogger(__name__)


def compute_quality_score(total: int, valid: int, with_errors: int) -> int:
    """
    Fleet-wide score in [0, 100], rounded half up.

    An empty catalog scores 100.
    """
    if total <= 0:
        return 100
    score = (valid / total) * 100 / 2 + ((total - with_errors) / total) * 100 / 2
    return max(0, min(100, int(math.floor(score + 0.5))))


class QualityEngine:
    """
    Validates, scores and optionally repairs catalog records.

    Usage:
        engine = QualityEngine(CatalogStore(), rng=random.Random(7))
        report = engine.run_pass(QualityConfig(auto_fix=True))
    """

    def __init__(
        self,
        store: Any,
        rng: Optional[random.Random] = None,
        alert_sinks: Optional[Sequence[AlertSink]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        fingerprints=MOCK_DATA_FINGERPRINTS,
    ):
        self.store = store
        self.generator = SuggestionGenerator(rng)
        self.alert_sinks = list(alert_sinks) if alert_sinks is not None else [LoggingAlertSink()]
        self.clock = clock
        self.fingerprints = fingerprints

    # =========================================================================
    # PASS
    # =========================================================================

    def run_pass(self, quality_config: Optional[QualityConfig] = None) -> QualityReport:
        quality_config = quality_config or QualityConfig()
        start = time.time()
        report = QualityReport(started_at=self.clock(), fingerprint_version=FINGERPRINT_VERSION)

        records = self.store.list_records()
        report.total_records = len(records)
        log_event("quality_pass_started", total_records=len(records),
                  auto_fix=quality_config.auto_fix)

        for record in records:
            self._inspect(record, report)

        report.quality_score = compute_quality_score(
            report.total_records, report.valid_records, report.records_with_errors,
        )

        if quality_config.auto_fix and report.suggestions:
            by_id = {r.id: r for r in records}
            self._apply_fixes(report, by_id)

        report.alerts = evaluate_thresholds(report, quality_config)
        report.completed_at = self.clock()

        if report.alerts:
            payload = build_alert_payload(report)
            for sink in self.alert_sinks:
                dispatch_alert(sink, payload)

        log_event(
            "quality_pass_completed",
            duration_ms=int((time.time() - start) * 1000),
            quality_score=report.quality_score,
            total_records=report.total_records,
            records_fixed=report.records_fixed,
            records_skipped=report.records_skipped,
            fix_errors=report.fix_errors,
            alerts=len(report.alerts),
        )
        return report

    def _inspect(self, record: CatalogRecord, report: QualityReport) -> None:
        findings = validate_record(record)

        matches = match_fingerprints(record, self.fingerprints)
        if matches:
            findings.append(QualityFinding(
                record_id=record.id,
                kind=FindingKind.MOCK_DATA_SUSPECTED,
                detail="Matches mock-data fingerprint(s): " + ", ".join(fp.name for fp in matches),
                record_name=record.name,
            ))

        kinds = {f.kind for f in findings}
        has_error = FindingKind.SCHEMA_ERROR in kinds
        has_warning = bool(kinds & {FindingKind.RANGE_WARNING, FindingKind.MOCK_DATA_SUSPECTED})

        if not has_error:
            report.valid_records += 1
        else:
            report.records_with_errors += 1
        if has_warning:
            report.records_with_warnings += 1
            report.suspicious_records += 1
        if matches:
            report.mock_data_records += 1
        if not findings:
            report.clean_records += 1

        patch = self.generator.suggest(record, findings, matched_fields(matches))
        if patch:
            report.suggestions[record.id] = patch
            mock_fields = set(matched_fields(matches))
            for finding in findings:
                if finding.kind == FindingKind.RANGE_WARNING and finding.field in patch:
                    finding.suggestion = {finding.field: patch[finding.field]}
                elif finding.kind == FindingKind.MOCK_DATA_SUSPECTED:
                    finding.suggestion = {k: v for k, v in patch.items() if k in mock_fields}

        report.findings.extend(findings)

    def _apply_fixes(self, report: QualityReport, records: Dict[str, CatalogRecord]) -> None:
        fixed_at = self.clock()
        for record_id, patch in report.suggestions.items():
            record = records[record_id]
            try:
                outcome = self.store.apply_fix(record_id, patch, record.updated_at, fixed_at=fixed_at)
            except PersistenceError as e:
                report.fix_errors += 1
                logger.warning("Fix for %s failed: %s", record_id, e)
                continue

            if outcome == FixOutcome.APPLIED:
                report.records_fixed += 1
            else:
                report.records_skipped += 1
                logger.info("Skipped fix for %s: record %s", record_id, outcome.value)


def run_quality_pass(
    store: Any,
    quality_config: Optional[QualityConfig] = None,
    rng: Optional[random.Random] = None,
    alert_sinks: Optional[List[AlertSink]] = None,
) -> QualityReport:
    """Run one quality pass with a fresh engine."""
    engine = QualityEngine(store, rng=rng, alert_sinks=alert_sinks)
    return engine.run_pass(quality_config)


__all__ = ["QualityEngine", "run_quality_pass", "compute_quality_score"]
