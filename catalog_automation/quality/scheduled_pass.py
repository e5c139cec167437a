"""
Scheduled Quality Pass - Cloud Run Job entrypoint for the data quality engine.

1. Reads every catalog record from Firestore
2. Validates, fingerprints and scores them
3. Applies corrective patches (--auto-fix only)
4. Sends alerts when thresholds are breached

Usage:
    python -m catalog_automation.quality.scheduled_pass
    python -m catalog_automation.quality.scheduled_pass --auto-fix --seed 42
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from typing import Any, Dict, List, Optional

from catalog_automation import config
from catalog_automation.catalog.store import CatalogStore
from catalog_automation.logging_utils import configure_logging
from catalog_automation.quality.alerts import AlertSink, WebhookAlertSink, default_sinks
from catalog_automation.quality.engine import run_quality_pass
from catalog_automation.quality.models import QualityConfig

logger = logging.getLogger(__name__)


def run_scheduled_pass(
    quality_config: QualityConfig,
    seed: Optional[int] = None,
    webhook_url: Optional[str] = None,
    store: Optional[Any] = None,
) -> Dict[str, Any]:
    """
    Run one quality pass against the configured store.

    Returns:
        Report summary dict
    """
    sinks: List[AlertSink] = default_sinks()
    if webhook_url and not any(isinstance(s, WebhookAlertSink) for s in sinks):
        sinks.append(WebhookAlertSink(webhook_url))

    rng = random.Random(seed) if seed is not None else None
    report = run_quality_pass(
        store or CatalogStore(),
        quality_config,
        rng=rng,
        alert_sinks=sinks,
    )
    return report.summary()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the catalog data quality pass")
    parser.add_argument(
        "--auto-fix", action="store_true", default=config.AUTO_FIX_DATA_QUALITY,
        help="Apply corrective patches to suspect records"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed for suggestion synthesis (reproducible fixes)"
    )
    parser.add_argument(
        "--max-mock-data-pct", type=float, default=5,
        help="Alert when mock data exceeds this percentage"
    )
    parser.add_argument(
        "--max-suspicious-pct", type=float, default=10,
        help="Alert when suspicious records exceed this percentage"
    )
    parser.add_argument(
        "--min-quality-score", type=float, default=90,
        help="Alert when the quality score falls below this value"
    )
    parser.add_argument(
        "--max-errors-per-record", type=int, default=2,
        help="Alert when a record has more schema errors than this"
    )
    parser.add_argument(
        "--webhook-url", default=None,
        help="Also post alerts to this webhook"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Verbose logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint for the scheduled quality pass."""
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    quality_config = QualityConfig(
        auto_fix=args.auto_fix,
        max_mock_data_pct=args.max_mock_data_pct,
        max_suspicious_pct=args.max_suspicious_pct,
        min_quality_score=args.min_quality_score,
        max_errors_per_record=args.max_errors_per_record,
    )
    summary = run_scheduled_pass(quality_config, seed=args.seed, webhook_url=args.webhook_url)

    print("\n" + "=" * 60)
    print("DATA QUALITY SUMMARY")
    print("=" * 60)
    print(json.dumps(summary, indent=2, default=str))

    return 0


if __name__ == "__main__":
    sys.exit(main())
