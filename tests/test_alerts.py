"""Tests for quality thresholds, alert payloads and sinks."""

from unittest import mock

from catalog_automation import config
from catalog_automation.quality import alerts
from catalog_automation.quality.alerts import (
    EmailAlertSink,
    LoggingAlertSink,
    WebhookAlertSink,
    build_alert_payload,
    default_sinks,
    dispatch_alert,
    evaluate_thresholds,
    format_alert_text,
)
from catalog_automation.quality.models import FindingKind, QualityConfig, QualityFinding, QualityReport
from catalog_automation.quality.scheduled_pass import build_parser, run_scheduled_pass
from tests.fakes import FakeCatalogStore, RecordingSink, make_record, mock_record


def _report(**counters):
    report = QualityReport(total_records=100, valid_records=100, quality_score=100)
    for key, value in counters.items():
        setattr(report, key, value)
    return report


def _schema_errors(record_id, count):
    return [
        QualityFinding(record_id=record_id, kind=FindingKind.SCHEMA_ERROR, detail=f"error {i}")
        for i in range(count)
    ]


# =============================================================================
# evaluate_thresholds tests
# =============================================================================


class TestEvaluateThresholds:

    def test_healthy_report_has_no_reasons(self):
        assert evaluate_thresholds(_report(), QualityConfig()) == []

    def test_limits_are_exclusive(self):
        report = _report(mock_data_records=5, suspicious_records=10, quality_score=90)
        assert evaluate_thresholds(report, QualityConfig()) == []

    def test_each_breach_reported(self):
        report = _report(mock_data_records=6, suspicious_records=11, quality_score=89)

        reasons = evaluate_thresholds(report, QualityConfig())

        assert len(reasons) == 3
        assert reasons[0].startswith("Mock data: 6.0%")
        assert reasons[1].startswith("Suspicious data: 11.0%")
        assert "89" in reasons[2]

    def test_errors_per_record(self):
        report = _report(findings=_schema_errors("a", 3) + _schema_errors("b", 2))

        reasons = evaluate_thresholds(report, QualityConfig(max_errors_per_record=2))

        assert reasons == ["1 record(s) with more than 2 schema errors"]


# =============================================================================
# payload tests
# =============================================================================


class TestAlertPayload:

    def test_payload_fields(self):
        report = _report(
            total_records=2, valid_records=1, records_with_errors=1, quality_score=50,
            findings=[QualityFinding(record_id="x", kind=FindingKind.SCHEMA_ERROR,
                                     detail="Missing name", field="name", record_name="X Tool")],
            alerts=["Quality score 50 below minimum 90"],
            fingerprint_version=1,
        )

        payload = build_alert_payload(report)

        assert payload["qualityScore"] == 50
        assert payload["totalTools"] == 2
        assert payload["validTools"] == 1
        assert payload["toolsWithErrors"] == 1
        assert payload["issues"] == [{"name": "X Tool", "type": "schema-error"}]
        assert payload["findings"][0]["field"] == "name"
        assert payload["reasons"] == ["Quality score 50 below minimum 90"]
        assert payload["fingerprintVersion"] == 1

    def test_issue_name_falls_back_to_id(self):
        report = _report(findings=[QualityFinding(record_id="x", kind=FindingKind.RANGE_WARNING, detail="d")])
        assert build_alert_payload(report)["issues"][0]["name"] == "x"

    def test_text_rendering(self):
        payload = build_alert_payload(_report(quality_score=70), reasons=["low score"])
        text = format_alert_text(payload)
        assert "Quality score: 70/100" in text
        assert "- low score" in text


# =============================================================================
# sink tests
# =============================================================================


class TestSinks:

    def test_dispatch_reports_failure(self):
        assert dispatch_alert(RecordingSink(fail=True), {"qualityScore": 1}) is False

    def test_dispatch_reports_success(self):
        sink = RecordingSink()
        assert dispatch_alert(sink, {"qualityScore": 1}) is True
        assert sink.payloads == [{"qualityScore": 1}]

    def test_logging_sink(self):
        payload = build_alert_payload(_report(), reasons=["x"])
        assert dispatch_alert(LoggingAlertSink(), payload) is True

    def test_webhook_sink_posts_payload(self):
        client = mock.Mock()
        sink = WebhookAlertSink("https://hooks.example.com/quality", client=client)

        sink.send({"qualityScore": 42})

        client.post.assert_called_once_with(
            "https://hooks.example.com/quality", json_body={"qualityScore": 42},
        )

    def test_email_message(self):
        sink = EmailAlertSink("smtp.example.com", ["ops@example.com", " ", "lead@example.com"],
                              sender="alerts@example.com")

        message = sink.build_message(build_alert_payload(_report(quality_score=73), reasons=[]))

        assert message["Subject"] == "Data Quality Alert - Score: 73/100"
        assert message["To"] == "ops@example.com, lead@example.com"

    def test_email_sink_sends_over_ssl(self):
        sink = EmailAlertSink("smtp.example.com", ["ops@example.com"], port=465,
                              username="user", password="secret")
        payload = build_alert_payload(_report(), reasons=[])

        with mock.patch.object(alerts.smtplib, "SMTP_SSL") as smtp_cls:
            sink.send(payload)

        smtp_cls.assert_called_once_with("smtp.example.com", 465)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.login.assert_called_once_with("user", "secret")
        smtp.send_message.assert_called_once()

    def test_email_sink_without_recipients_is_noop(self):
        sink = EmailAlertSink("smtp.example.com", [])
        with mock.patch.object(alerts.smtplib, "SMTP_SSL") as smtp_cls:
            sink.send({"qualityScore": 1})
        smtp_cls.assert_not_called()

    def test_default_sinks_from_config(self, monkeypatch):
        monkeypatch.setattr(config, "ALERT_WEBHOOK_URL", "https://hooks.example.com/q")
        monkeypatch.setattr(config, "SMTP_HOST", None)

        sinks = default_sinks()

        assert [type(s) for s in sinks] == [LoggingAlertSink, WebhookAlertSink]


# =============================================================================
# scheduled pass tests
# =============================================================================


class TestScheduledPass:

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        assert args.max_mock_data_pct == 5
        assert args.min_quality_score == 90
        assert args.max_errors_per_record == 2

    def test_run_with_injected_store(self, monkeypatch):
        monkeypatch.setattr(config, "ALERT_WEBHOOK_URL", None)
        monkeypatch.setattr(config, "SMTP_HOST", None)
        store = FakeCatalogStore([make_record(), mock_record()])

        summary = run_scheduled_pass(QualityConfig(auto_fix=True), seed=42, store=store)

        assert summary["total_records"] == 2
        assert summary["records_fixed"] == 1
        assert summary["mock_data_records"] == 1
        assert store.records["template-tool"].data_quality_fixed is True
