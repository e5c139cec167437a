"""
Quality Package - Data quality engine for catalog records.

This package provides:
- validators: Schema and range rules
- fingerprints: Versioned mock-data fingerprint table
- suggestions: Corrective value synthesis
- engine: Quality pass (scoring + transactional auto-fix)
- alerts: Threshold evaluation, alert payload and sinks
- scheduled_pass: Command-line entrypoint for scheduled runs
"""

from catalog_automation.quality.engine import QualityEngine, run_quality_pass
from catalog_automation.quality.models import (
    FindingKind,
    QualityConfig,
    QualityFinding,
    QualityReport,
)

__all__ = [
    "QualityEngine",
    "run_quality_pass",
    "FindingKind",
    "QualityConfig",
    "QualityFinding",
    "QualityReport",
]
