"""
Catalog Automation CLI.

Command-line interface for operators:
- run: Run a discovery, refresh or manual-refresh job and wait for it
- status: Show the latest run status per job kind
- auto-refresh: Persist the auto-refresh flag
- quality-pass: Run the data quality engine
- watchdog: Clean up expired automation locks
- serve: Start the admin API

Usage:
    catalog-automation run discovery
    catalog-automation run manual-refresh --type news
    catalog-automation status
    catalog-automation quality-pass --auto-fix --seed 42
    catalog-automation watchdog --apply
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click

from catalog_automation import config
from catalog_automation.exceptions import CatalogAutomationError
from catalog_automation.jobs.models import TRIGGERABLE_KINDS, JobKind
from catalog_automation.logging_utils import configure_logging


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def cli(verbose: bool):
    """Catalog Automation CLI - discovery runs and data quality."""
    configure_logging(verbose=verbose)


# =============================================================================
# RUN
# =============================================================================

@cli.command("run")
@click.argument("kind", type=click.Choice([k.value for k in TRIGGERABLE_KINDS]))
@click.option("--type", "content_type", default="all",
              type=click.Choice(["all", "tools", "news"]),
              help="Content type for manual-refresh (default: all)")
@click.option("--timeout", default=config.RUN_TIMEOUT_SECS, type=int,
              help="Run timeout in seconds")
def run(kind: str, content_type: str, timeout: int):
    """
    Run one job and wait for its report.

    Examples:
        catalog-automation run discovery
        catalog-automation run refresh --timeout 600
    """
    from catalog_automation.jobs.orchestrator import build_orchestrator

    orchestrator = build_orchestrator()
    orchestrator.run_timeout_secs = timeout
    params = {"type": content_type} if kind == JobKind.MANUAL_REFRESH.value else None

    try:
        accepted = orchestrator.trigger_run(kind, params)
        if not accepted.started:
            click.echo(click.style(f"⚠ {accepted.message}", fg="yellow"))
            sys.exit(1)

        click.echo(click.style(f"✓ {accepted.message}", fg="green"))
        handle = orchestrator.registry.get_handle(kind)
        if handle is not None:
            handle.wait()

        status = orchestrator.get_status(kind)
    finally:
        orchestrator.shutdown(wait=True)

    click.echo(json.dumps(status.to_dict(), indent=2, default=str))
    if status.state != "completed":
        sys.exit(1)


# =============================================================================
# STATUS
# =============================================================================

@cli.command("status")
@click.argument("kind", required=False,
                type=click.Choice([k.value for k in TRIGGERABLE_KINDS]))
def status(kind: Optional[str]):
    """Show the latest persisted report per job kind."""
    from catalog_automation.jobs.orchestrator import build_orchestrator

    orchestrator = build_orchestrator()
    kinds = [kind] if kind else [k.value for k in TRIGGERABLE_KINDS]
    try:
        statuses = {k: orchestrator.get_status(k).to_dict() for k in kinds}
    finally:
        orchestrator.shutdown()
    click.echo(json.dumps(statuses, indent=2, default=str))


# =============================================================================
# AUTO-REFRESH
# =============================================================================

@cli.command("auto-refresh")
@click.option("--enable/--disable", default=True, help="Turn recurring refresh on or off")
def auto_refresh(enable: bool):
    """
    Persist the auto-refresh flag.

    A running API server picks the flag up on its next start; use the
    toggle-auto-refresh action to switch a live server.
    """
    from catalog_automation.jobs.settings import AUTO_REFRESH_ENABLED, SettingsStore

    try:
        SettingsStore().set(AUTO_REFRESH_ENABLED, enable)
    except CatalogAutomationError as e:
        click.echo(click.style(f"✗ Failed to update setting: {e}", fg="red"), err=True)
        sys.exit(1)
    state = "enabled" if enable else "disabled"
    click.echo(click.style(f"✓ Auto-refresh {state}", fg="green"))


# =============================================================================
# QUALITY PASS
# =============================================================================

@cli.command("quality-pass")
@click.option("--auto-fix", is_flag=True, default=config.AUTO_FIX_DATA_QUALITY,
              help="Apply corrective patches to suspect records")
@click.option("--seed", type=int, default=None, help="Seed for suggestion synthesis")
@click.option("--max-mock-data-pct", default=5.0, type=float, help="Mock data alert threshold (%)")
@click.option("--max-suspicious-pct", default=10.0, type=float, help="Suspicious data alert threshold (%)")
@click.option("--min-quality-score", default=90.0, type=float, help="Minimum acceptable quality score")
@click.option("--max-errors-per-record", default=2, type=int, help="Schema errors per record before alerting")
@click.option("--webhook-url", default=None, help="Also post alerts to this webhook")
def quality_pass(
    auto_fix: bool,
    seed: Optional[int],
    max_mock_data_pct: float,
    max_suspicious_pct: float,
    min_quality_score: float,
    max_errors_per_record: int,
    webhook_url: Optional[str],
):
    """Validate, score and optionally fix every catalog record."""
    from catalog_automation.quality.models import QualityConfig
    from catalog_automation.quality.scheduled_pass import run_scheduled_pass

    quality_config = QualityConfig(
        auto_fix=auto_fix,
        max_mock_data_pct=max_mock_data_pct,
        max_suspicious_pct=max_suspicious_pct,
        min_quality_score=min_quality_score,
        max_errors_per_record=max_errors_per_record,
    )
    summary = run_scheduled_pass(quality_config, seed=seed, webhook_url=webhook_url)

    color = "green" if not summary["alerts"] else "yellow"
    click.echo(click.style(f"Quality score: {summary['quality_score']}/100", fg=color))
    click.echo(json.dumps(summary, indent=2, default=str))


# =============================================================================
# WATCHDOG
# =============================================================================

@cli.command("watchdog")
@click.option("--apply", is_flag=True, help="Delete expired locks (default: dry run)")
def watchdog(apply: bool):
    """Clean up automation locks left by crashed replicas."""
    from catalog_automation.jobs.watchdog import run_watchdog

    results = run_watchdog(dry_run=not apply)
    click.echo(json.dumps(results, indent=2, default=str))
    if not apply:
        click.echo(click.style("\n⚠ Dry-run mode: No locks were deleted", fg="yellow"))


# =============================================================================
# SERVE
# =============================================================================

@cli.command("serve")
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=config.API_PORT, type=int, help="Port (default: $PORT or 8080)")
@click.option("--debug", is_flag=True, help="Flask debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the admin API with the orchestrator."""
    from catalog_automation.api.app import create_app
    from catalog_automation.jobs.orchestrator import build_orchestrator

    orchestrator = build_orchestrator()
    orchestrator.start()
    app = create_app(orchestrator)
    try:
        app.run(host=host, port=port, debug=debug, use_reloader=False)
    finally:
        orchestrator.shutdown()


if __name__ == "__main__":
    cli()
