"""
Quality alerts - threshold evaluation, payload construction and sinks.

Sinks are fire-and-forget: a delivery failure is logged and never fails the
quality pass.
"""

from __future__ import annotations

import json
import logging
import smtplib
from collections import Counter
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Sequence

from catalog_automation import config
from catalog_automation.libs.http import HttpClient
from catalog_automation.logging_utils import log_event
from catalog_automation.quality.models import FindingKind, QualityConfig, QualityReport

logger = logging.getLogger(__name__)


# =============================================================================
# THRESHOLDS
# =============================================================================

def evaluate_thresholds(report: QualityReport, quality_config: QualityConfig) -> List[str]:
    """
    Return a human-readable reason for every breached threshold.

    An empty list means no alert is due.
    """
    reasons: List[str] = []

    if report.mock_data_pct > quality_config.max_mock_data_pct:
        reasons.append(
            f"Mock data: {report.mock_data_pct:.1f}% of records "
            f"(limit {quality_config.max_mock_data_pct}%)"
        )
    if report.suspicious_pct > quality_config.max_suspicious_pct:
        reasons.append(
            f"Suspicious data: {report.suspicious_pct:.1f}% of records "
            f"(limit {quality_config.max_suspicious_pct}%)"
        )
    if report.quality_score < quality_config.min_quality_score:
        reasons.append(
            f"Quality score {report.quality_score} below minimum {quality_config.min_quality_score}"
        )

    errors_per_record = Counter(
        f.record_id for f in report.findings if f.kind == FindingKind.SCHEMA_ERROR
    )
    worst = [rid for rid, n in errors_per_record.items() if n > quality_config.max_errors_per_record]
    if worst:
        reasons.append(
            f"{len(worst)} record(s) with more than "
            f"{quality_config.max_errors_per_record} schema errors"
        )

    return reasons


# =============================================================================
# PAYLOAD
# =============================================================================

def build_alert_payload(report: QualityReport, reasons: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Build the alert payload for a quality report.

    Includes the full per-record finding list.
    """
    return {
        "qualityScore": int(report.quality_score),
        "totalTools": report.total_records,
        "validTools": report.valid_records,
        "toolsWithErrors": report.records_with_errors,
        "toolsWithWarnings": report.records_with_warnings,
        "mockDataTools": report.mock_data_records,
        "suspiciousTools": report.suspicious_records,
        "issues": [
            {"name": f.record_name or f.record_id, "type": f.kind.value}
            for f in report.findings
        ],
        "findings": [f.to_dict() for f in report.findings],
        "reasons": list(reasons if reasons is not None else report.alerts),
        "recordsFixed": report.records_fixed,
        "fingerprintVersion": report.fingerprint_version,
        "timestamp": (report.completed_at or datetime.now(timezone.utc)).isoformat(),
    }


def format_alert_text(payload: Dict[str, Any]) -> str:
    """Plain-text rendering for email bodies."""
    lines = [
        "Data Quality Alert",
        "",
        f"Quality score: {payload['qualityScore']}/100",
        f"Total tools: {payload['totalTools']}",
        f"Valid tools: {payload['validTools']}",
        f"Tools with errors: {payload['toolsWithErrors']}",
        f"Tools with warnings: {payload['toolsWithWarnings']}",
        f"Mock data tools: {payload['mockDataTools']}",
        f"Suspicious tools: {payload['suspiciousTools']}",
        "",
        "Reasons:",
    ]
    lines.extend(f"- {reason}" for reason in payload["reasons"])
    lines.append("")
    lines.append("Issues:")
    lines.extend(f"- {issue['name']}: {issue['type']}" for issue in payload["issues"])
    return "\n".join(lines)


# =============================================================================
# SINKS
# =============================================================================

class AlertSink:
    """Base sink. Subclasses deliver the payload somewhere."""

    def send(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingAlertSink(AlertSink):
    """Default sink: one structured warning event."""

    def send(self, payload: Dict[str, Any]) -> None:
        log_event(
            "quality_alert",
            level=logging.WARNING,
            quality_score=payload["qualityScore"],
            total_tools=payload["totalTools"],
            reasons=payload["reasons"],
            issue_count=len(payload["issues"]),
        )


class WebhookAlertSink(AlertSink):
    """POST the JSON payload to a webhook."""

    def __init__(self, url: str, client: Optional[HttpClient] = None):
        self.url = url
        self.client = client or HttpClient(base_url=url, max_retries=2)

    def send(self, payload: Dict[str, Any]) -> None:
        self.client.post(self.url, json_body=payload)
        logger.info("Quality alert posted to webhook")


class EmailAlertSink(AlertSink):
    """Send the alert as a plain-text email over SMTP (SSL)."""

    def __init__(
        self,
        host: str,
        recipients: Sequence[str],
        port: int = config.SMTP_PORT,
        username: Optional[str] = config.SMTP_USER,
        password: Optional[str] = config.SMTP_PASS,
        sender: str = config.SMTP_FROM,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.recipients = [r.strip() for r in recipients if r and r.strip()]

    def build_message(self, payload: Dict[str, Any]) -> MIMEText:
        message = MIMEText(format_alert_text(payload))
        message["Subject"] = f"Data Quality Alert - Score: {payload['qualityScore']}/100"
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        return message

    def send(self, payload: Dict[str, Any]) -> None:
        if not self.recipients:
            logger.warning("No alert recipients configured, skipping email")
            return
        message = self.build_message(payload)
        with smtplib.SMTP_SSL(self.host, self.port) as smtp:
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Quality alert emailed to %d recipient(s)", len(self.recipients))


def dispatch_alert(sink: AlertSink, payload: Dict[str, Any]) -> bool:
    """
    Deliver a payload, logging failures.

    Returns:
        True if the sink accepted the payload
    """
    try:
        sink.send(payload)
        return True
    except Exception as e:
        logger.warning("Alert delivery via %s failed: %s", type(sink).__name__, e)
        log_event("quality_alert_failed", level=logging.WARNING,
                  sink=type(sink).__name__, error=str(e))
        return False


def default_sinks() -> List[AlertSink]:
    """Sinks configured through the environment, logging always included."""
    sinks: List[AlertSink] = [LoggingAlertSink()]
    if config.ALERT_WEBHOOK_URL:
        sinks.append(WebhookAlertSink(config.ALERT_WEBHOOK_URL))
    if config.SMTP_HOST and config.ADMIN_EMAILS:
        sinks.append(EmailAlertSink(config.SMTP_HOST, config.ADMIN_EMAILS.split(",")))
    return sinks


def payload_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, default=str)


__all__ = [
    "evaluate_thresholds",
    "build_alert_payload",
    "format_alert_text",
    "AlertSink",
    "LoggingAlertSink",
    "WebhookAlertSink",
    "EmailAlertSink",
    "dispatch_alert",
    "default_sinks",
    "payload_json",
]
