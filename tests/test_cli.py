"""Tests for the operator CLI."""

import json

import pytest
from click.testing import CliRunner

from catalog_automation import cli as cli_module
from catalog_automation.jobs import orchestrator as orchestrator_module
from catalog_automation.jobs import settings as settings_module
from catalog_automation.jobs import watchdog as watchdog_module
from catalog_automation.quality import scheduled_pass
from tests.fakes import FakeSettingsStore


@pytest.fixture
def runner():
    return CliRunner()


class TestRunCommand:

    def test_run_refresh_waits_for_report(self, runner, monkeypatch, make_orchestrator):
        orchestrator = make_orchestrator()
        monkeypatch.setattr(orchestrator_module, "build_orchestrator", lambda db=None: orchestrator)

        result = runner.invoke(cli_module.cli, ["run", "refresh"])

        assert result.exit_code == 0, result.output
        assert "Data refresh started successfully" in result.output
        assert '"state": "completed"' in result.output

    def test_run_rejects_unknown_kind(self, runner):
        result = runner.invoke(cli_module.cli, ["run", "auto-refresh"])
        assert result.exit_code != 0


class TestStatusCommand:

    def test_status_all_kinds(self, runner, monkeypatch, make_orchestrator):
        orchestrator = make_orchestrator()
        monkeypatch.setattr(orchestrator_module, "build_orchestrator", lambda db=None: orchestrator)

        result = runner.invoke(cli_module.cli, ["status"])

        assert result.exit_code == 0, result.output
        statuses = json.loads(result.stdout)
        assert set(statuses) == {"discovery", "refresh", "manual-refresh"}
        assert statuses["discovery"]["state"] == "no-data"


class TestAutoRefreshCommand:

    def test_disable(self, runner, monkeypatch):
        store = FakeSettingsStore()
        monkeypatch.setattr(settings_module, "SettingsStore", lambda: store)

        result = runner.invoke(cli_module.cli, ["auto-refresh", "--disable"])

        assert result.exit_code == 0, result.output
        assert store.values == {settings_module.AUTO_REFRESH_ENABLED: False}
        assert "Auto-refresh disabled" in result.output


class TestQualityPassCommand:

    def test_passes_thresholds_through(self, runner, monkeypatch):
        captured = {}

        def fake_run(quality_config, seed=None, webhook_url=None, store=None):
            captured["config"] = quality_config
            captured["seed"] = seed
            return {"quality_score": 97, "alerts": []}

        monkeypatch.setattr(scheduled_pass, "run_scheduled_pass", fake_run)

        result = runner.invoke(cli_module.cli, [
            "quality-pass", "--auto-fix", "--seed", "42", "--min-quality-score", "95",
        ])

        assert result.exit_code == 0, result.output
        assert "Quality score: 97/100" in result.output
        assert captured["seed"] == 42
        assert captured["config"].auto_fix is True
        assert captured["config"].min_quality_score == 95


class TestWatchdogCommand:

    def test_dry_run_by_default(self, runner, monkeypatch):
        calls = []

        def fake_watchdog(db=None, dry_run=True):
            calls.append(dry_run)
            return {"locks": {"found": 0}, "dry_run": dry_run}

        monkeypatch.setattr(watchdog_module, "run_watchdog", fake_watchdog)

        result = runner.invoke(cli_module.cli, ["watchdog"])

        assert result.exit_code == 0, result.output
        assert calls == [True]
        assert "Dry-run mode" in result.output
