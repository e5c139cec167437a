"""
Exceptions - Error taxonomy for the orchestrator and quality engine.

Finding-level errors (ValidationError, RangeWarning, MockDataSuspected) map
1:1 to quality finding kinds. The quality engine records them as findings
instead of raising; they exist as exceptions for callers that validate a
single record and want to fail fast.
"""

from __future__ import annotations

from typing import Optional


class CatalogAutomationError(Exception):
    """Base class for all catalog automation errors."""


# =============================================================================
# QUALITY TAXONOMY
# =============================================================================

class RecordFindingError(CatalogAutomationError):
    """A quality finding raised as an exception."""

    def __init__(self, record_id: str, detail: str, field: Optional[str] = None):
        super().__init__(f"{record_id}: {detail}")
        self.record_id = record_id
        self.detail = detail
        self.field = field


class ValidationError(RecordFindingError):
    """Record fails a schema rule. Never auto-corrected."""


class RangeWarning(RecordFindingError):
    """Plausible but unusual numeric value. Correctable."""


class MockDataSuspected(RecordFindingError):
    """Record matches a known placeholder fingerprint. Correctable."""


# =============================================================================
# ORCHESTRATION
# =============================================================================

class InvalidJobKindError(CatalogAutomationError, ValueError):
    """Unknown job kind requested."""


class JobExecutionError(CatalogAutomationError):
    """Upstream discovery producer failed or timed out."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class PersistenceError(CatalogAutomationError):
    """Store unreachable after bounded retries."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class BroadcastError(CatalogAutomationError):
    """Completion event could not be published. Logged, never propagated."""


__all__ = [
    "CatalogAutomationError",
    "RecordFindingError",
    "ValidationError",
    "RangeWarning",
    "MockDataSuspected",
    "InvalidJobKindError",
    "JobExecutionError",
    "PersistenceError",
    "BroadcastError",
]
