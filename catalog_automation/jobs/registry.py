"""
Task Registry - Supervised background execution with per-kind exclusivity.

Each submitted task runs in its own daemon thread, watched by a supervisor
running on the registry's thread pool. The supervisor enforces the timeout,
runs the completion callback exactly once, and frees the kind slot.

Exclusivity:
- In-process: kind -> handle table guarded by a lock
- Cross-replica (optional): FirestoreLeaseLock with heartbeat renewal
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from catalog_automation import config
from catalog_automation.jobs.locks import FirestoreLeaseLock, HeartbeatThread
from catalog_automation.logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclass
class TaskOutcome:
    """What happened to one task."""
    kind: str
    run_id: str
    result: Any = None
    error: Optional[Exception] = None
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.timed_out


class TaskHandle:
    """Handle for one running task."""

    def __init__(self, kind: str, timeout_secs: Optional[float] = None):
        self.kind = kind
        self.run_id = f"{kind}-{uuid.uuid4().hex[:12]}"
        self.timeout_secs = timeout_secs
        self.started_at = datetime.now(timezone.utc)
        self.cancel_event = threading.Event()
        self.done_event = threading.Event()
        self.future: Optional[Future] = None
        self.outcome: Optional[TaskOutcome] = None
        self._completion_lock = threading.Lock()
        self._completed = False

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the task finished and its slot was released."""
        return self.done_event.wait(timeout)

    def complete_once(self, callback: Optional[Callable[[TaskOutcome], None]], outcome: TaskOutcome) -> bool:
        """Run the completion callback unless it already ran."""
        with self._completion_lock:
            if self._completed:
                return False
            self._completed = True
            self.outcome = outcome

        if callback is not None:
            try:
                callback(outcome)
            except Exception:
                logger.exception("Completion callback for %s failed", self.run_id)
        return True


class TaskRegistry:
    """
    Runs at most one task per kind.

    Usage:
        registry = TaskRegistry()
        handle = registry.submit("discovery", run_discovery, on_complete=persist)
        if handle is None:
            ...  # already running
    """

    def __init__(
        self,
        max_workers: int = config.MAX_WORKERS,
        lease_lock: Optional[FirestoreLeaseLock] = None,
        heartbeat_interval_secs: float = config.HEARTBEAT_INTERVAL_SECS,
    ):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="automation")
        self._lock = threading.Lock()
        self._active: Dict[str, TaskHandle] = {}
        self.lease_lock = lease_lock
        self.heartbeat_interval_secs = heartbeat_interval_secs

    # =========================================================================
    # QUERIES
    # =========================================================================

    def is_running(self, kind: str) -> bool:
        with self._lock:
            return kind in self._active

    def get_handle(self, kind: str) -> Optional[TaskHandle]:
        with self._lock:
            return self._active.get(kind)

    def running_kinds(self) -> List[str]:
        with self._lock:
            return list(self._active)

    # =========================================================================
    # CONTROL
    # =========================================================================

    def submit(
        self,
        kind: str,
        fn: Callable[[TaskHandle], Any],
        on_complete: Optional[Callable[[TaskOutcome], None]] = None,
        timeout_secs: Optional[float] = None,
    ) -> Optional[TaskHandle]:
        """
        Start fn in the background unless a task of this kind is running.

        Args:
            kind: Exclusivity key
            fn: Task body, receives its handle (check handle.cancel_event)
            on_complete: Continuation, run exactly once after success,
                failure or timeout
            timeout_secs: Run time limit (None = unbounded)

        Returns:
            The new handle, or None if the kind is already running
        """
        with self._lock:
            if kind in self._active:
                log_event("run_already_active", job_kind=kind,
                          run_id=self._active[kind].run_id)
                return None
            handle = TaskHandle(kind, timeout_secs)
            self._active[kind] = handle

        try:
            handle.future = self._executor.submit(self._supervise, handle, fn, on_complete)
        except RuntimeError:
            self._release(handle)
            raise
        return handle

    def cancel(self, kind: str) -> bool:
        handle = self.get_handle(kind)
        if handle is None:
            return False
        handle.cancel()
        log_event("run_cancel_requested", job_kind=kind, run_id=handle.run_id)
        return True

    def shutdown(self, wait: bool = False) -> None:
        """Cancel every task and stop accepting new ones."""
        with self._lock:
            handles = list(self._active.values())
        for handle in handles:
            handle.cancel()
        self._executor.shutdown(wait=wait)

    # =========================================================================
    # SUPERVISION
    # =========================================================================

    def _supervise(self, handle: TaskHandle, fn, on_complete) -> None:
        start = time.time()
        heartbeat: Optional[HeartbeatThread] = None
        lease_held = False

        try:
            if self.lease_lock is not None:
                lease_held = self.lease_lock.acquire(handle.kind, handle.run_id)
                if not lease_held:
                    log_event("lock_contention", job_kind=handle.kind, run_id=handle.run_id)
                    return
                heartbeat = HeartbeatThread(self.lease_lock, handle.kind, handle.run_id,
                                            interval_secs=self.heartbeat_interval_secs)
                heartbeat.start()

            log_event("job_started", job_kind=handle.kind, run_id=handle.run_id)
            outcome = self._run_with_timeout(handle, fn)
            outcome.duration_ms = int((time.time() - start) * 1000)

            if outcome.timed_out:
                log_event("job_timed_out", job_kind=handle.kind, run_id=handle.run_id,
                          duration_ms=outcome.duration_ms, level=logging.WARNING)
            elif outcome.error is not None:
                log_event("job_failed", job_kind=handle.kind, run_id=handle.run_id,
                          duration_ms=outcome.duration_ms, level=logging.ERROR,
                          error=str(outcome.error))
            else:
                log_event("job_completed", job_kind=handle.kind, run_id=handle.run_id,
                          duration_ms=outcome.duration_ms)

            handle.complete_once(on_complete, outcome)
        finally:
            if heartbeat is not None:
                heartbeat.stop()
            if lease_held:
                self.lease_lock.release(handle.kind, handle.run_id)
            self._release(handle)

    def _run_with_timeout(self, handle: TaskHandle, fn) -> TaskOutcome:
        outcome = TaskOutcome(kind=handle.kind, run_id=handle.run_id)
        box: Dict[str, Any] = {}

        def target():
            try:
                box["result"] = fn(handle)
            except Exception as e:
                box["error"] = e

        worker = threading.Thread(target=target, name=handle.run_id, daemon=True)
        worker.start()
        worker.join(handle.timeout_secs)

        if worker.is_alive():
            # Cooperative cancel; a late result is discarded
            handle.cancel()
            outcome.timed_out = True
            return outcome

        outcome.result = box.get("result")
        outcome.error = box.get("error")
        return outcome

    def _release(self, handle: TaskHandle) -> None:
        with self._lock:
            if self._active.get(handle.kind) is handle:
                del self._active[handle.kind]
        handle.done_event.set()


__all__ = ["TaskRegistry", "TaskHandle", "TaskOutcome"]
