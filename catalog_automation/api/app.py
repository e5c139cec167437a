"""
Automation Admin API - Flask control and status endpoints.

Endpoints:
- POST /api/admin/automation: {action, ...} control surface
- GET  /api/admin/automation: Latest discovery run and settings
- GET  /api/admin/automation/status/<kind>: Per-kind run status
- GET  /api/health: Liveness

Run locally:
    catalog-automation serve
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request
from flask_cors import CORS

from catalog_automation.exceptions import InvalidJobKindError
from catalog_automation.jobs.models import JobKind
from catalog_automation.jobs.orchestrator import JobOrchestrator

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_bool(value: Any) -> bool:
    # Form-style clients send "true"/"false"
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _accepted_body(accepted) -> Dict[str, Any]:
    return {
        "message": accepted.message,
        "timestamp": accepted.timestamp.isoformat(),
        "syncEnabled": accepted.sync_enabled,
        "started": accepted.started,
    }


def handle_action(orchestrator: JobOrchestrator, body: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], int]:
    """
    Dispatch one control action.

    Returns:
        (response body, HTTP status)
    """
    if not isinstance(body, dict):
        return {"error": "Invalid action"}, 400

    action = body.get("action")

    if action == "run-automation":
        return _accepted_body(orchestrator.trigger_run(JobKind.DISCOVERY)), 200

    if action == "refresh-data":
        return _accepted_body(orchestrator.trigger_run(JobKind.REFRESH)), 200

    if action == "refresh-content":
        content_type = body.get("type") or "all"
        accepted = orchestrator.trigger_run(JobKind.MANUAL_REFRESH, {"type": content_type})
        return _accepted_body(accepted), 200

    if action == "toggle-auto-refresh":
        return orchestrator.toggle_auto_refresh(_as_bool(body.get("enabled"))), 200

    if action == "get-automation-settings":
        return orchestrator.get_settings(), 200

    return {"error": "Invalid action"}, 400


def create_app(orchestrator: JobOrchestrator) -> Flask:
    """Application factory."""
    app = Flask(__name__)
    CORS(app)
    app.config["ORCHESTRATOR"] = orchestrator

    @app.route("/api/admin/automation", methods=["POST"])
    def automation_action():
        body = request.get_json(silent=True)
        try:
            payload, status = handle_action(orchestrator, body)
        except Exception as e:
            logger.exception("Automation action failed")
            return jsonify({"error": str(e), "timestamp": _now()}), 500
        return jsonify(payload), status

    @app.route("/api/admin/automation", methods=["GET"])
    def automation_status():
        try:
            return jsonify(orchestrator.get_overview())
        except Exception as e:
            logger.warning("Automation status unavailable: %s", e)
            return jsonify({
                "status": "error",
                "error": str(e),
                "timestamp": _now(),
            })

    @app.route("/api/admin/automation/status/<kind>")
    def run_status(kind):
        try:
            status = orchestrator.get_status(kind)
        except InvalidJobKindError as e:
            return jsonify({"error": str(e)}), 404
        return jsonify(status.to_dict())

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "ok",
            "running": orchestrator.registry.running_kinds(),
            "timestamp": _now(),
        })

    return app


__all__ = ["create_app", "handle_action"]
