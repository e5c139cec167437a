"""
Catalog Automation - Discovery orchestration and data quality for the tools catalog.

This package provides:
- trending: Trending score calculation and ranking helpers
- catalog: Catalog record model and Firestore store
- quality: Validation, mock-data fingerprinting, auto-remediation
- jobs: Job orchestrator, task registry, run reports, watchdog
- api: Flask control and status endpoints
- libs: HTTP client

Entry points:
- catalog_automation/cli.py: Operator CLI (run, status, auto-refresh, quality-pass)
- catalog_automation/quality/scheduled_pass.py: Scheduled quality pass
- catalog_automation/api/app.py: Admin API server
"""

__version__ = "0.1.0"
