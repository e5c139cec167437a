"""Tests for the supervised task registry."""

import threading

import pytest

from catalog_automation.jobs.registry import TaskHandle, TaskOutcome, TaskRegistry
from tests.fakes import wait_for


class FakeLeaseLock:
    def __init__(self, available=True):
        self.available = available
        self.acquired = []
        self.released = []
        self.renewed = []

    def acquire(self, kind, run_id):
        self.acquired.append((kind, run_id))
        return self.available

    def renew(self, kind, run_id):
        self.renewed.append((kind, run_id))

    def release(self, kind, run_id):
        self.released.append((kind, run_id))
        return True


@pytest.fixture
def registry():
    registry = TaskRegistry(max_workers=4)
    yield registry
    registry.shutdown(wait=False)


class TestExclusivity:

    def test_second_submit_for_same_kind_is_rejected(self, registry):
        gate = threading.Event()
        first = registry.submit("discovery", lambda h: gate.wait(5))

        second = registry.submit("discovery", lambda h: None)

        assert first is not None
        assert second is None
        assert registry.is_running("discovery")

        gate.set()
        assert first.wait(5)
        assert not registry.is_running("discovery")

    def test_other_kinds_run_concurrently(self, registry):
        gate = threading.Event()
        a = registry.submit("discovery", lambda h: gate.wait(5))
        b = registry.submit("refresh", lambda h: gate.wait(5))

        assert a is not None and b is not None
        assert sorted(registry.running_kinds()) == ["discovery", "refresh"]
        gate.set()
        assert a.wait(5) and b.wait(5)

    def test_kind_can_run_again_after_completion(self, registry):
        first = registry.submit("refresh", lambda h: 1)
        assert first.wait(5)

        second = registry.submit("refresh", lambda h: 2)

        assert second is not None
        assert second.run_id != first.run_id
        assert second.wait(5)


class TestCompletion:

    def test_result_reaches_callback_once(self, registry):
        outcomes = []

        handle = registry.submit("refresh", lambda h: "done", on_complete=outcomes.append)

        assert handle.wait(5)
        assert len(outcomes) == 1
        assert outcomes[0].result == "done"
        assert outcomes[0].succeeded
        assert handle.outcome is outcomes[0]

    def test_error_reaches_callback(self, registry):
        outcomes = []

        def boom(handle):
            raise ValueError("upstream exploded")

        handle = registry.submit("refresh", boom, on_complete=outcomes.append)

        assert handle.wait(5)
        assert isinstance(outcomes[0].error, ValueError)
        assert not outcomes[0].succeeded
        assert not registry.is_running("refresh")

    def test_timeout_cancels_and_completes(self, registry):
        outcomes = []
        release = threading.Event()

        def slow(handle):
            release.wait(5)
            return "late"

        handle = registry.submit("discovery", slow, on_complete=outcomes.append, timeout_secs=0.1)

        assert handle.wait(5)
        assert outcomes[0].timed_out
        assert outcomes[0].result is None
        assert handle.cancelled
        release.set()

    def test_failing_callback_still_releases_slot(self, registry):
        def bad_callback(outcome):
            raise RuntimeError("callback failed")

        handle = registry.submit("refresh", lambda h: 1, on_complete=bad_callback)

        assert handle.wait(5)
        assert not registry.is_running("refresh")

    def test_complete_once(self):
        handle = TaskHandle("refresh")
        calls = []
        outcome = TaskOutcome(kind="refresh", run_id=handle.run_id)

        assert handle.complete_once(calls.append, outcome) is True
        assert handle.complete_once(calls.append, outcome) is False
        assert calls == [outcome]


class TestCancellation:

    def test_cancel_sets_event(self, registry):
        started = threading.Event()

        def loop(handle):
            started.set()
            handle.cancel_event.wait(5)
            return "stopped"

        handle = registry.submit("auto-refresh", loop)
        assert started.wait(5)

        assert registry.cancel("auto-refresh") is True
        assert handle.wait(5)
        assert handle.outcome.result == "stopped"

    def test_cancel_unknown_kind(self, registry):
        assert registry.cancel("refresh") is False


class TestLeaseLock:

    def test_lease_acquired_and_released(self):
        lock = FakeLeaseLock()
        registry = TaskRegistry(max_workers=2, lease_lock=lock, heartbeat_interval_secs=60)
        try:
            handle = registry.submit("discovery", lambda h: 1)
            assert handle.wait(5)
        finally:
            registry.shutdown()

        assert lock.acquired == [("discovery", handle.run_id)]
        assert lock.released == [("discovery", handle.run_id)]

    def test_contention_skips_run(self):
        lock = FakeLeaseLock(available=False)
        ran = []
        outcomes = []
        registry = TaskRegistry(max_workers=2, lease_lock=lock)
        try:
            handle = registry.submit("discovery", lambda h: ran.append(1), on_complete=outcomes.append)
            assert handle.wait(5)
        finally:
            registry.shutdown()

        assert ran == []
        assert outcomes == []
        assert lock.released == []
        assert wait_for(lambda: not registry.is_running("discovery"))
