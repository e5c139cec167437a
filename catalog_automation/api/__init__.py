"""API Package - Flask admin endpoints for the orchestrator."""

from catalog_automation.api.app import create_app, handle_action

__all__ = ["create_app", "handle_action"]
