"""Tests for the Firestore-backed stores against an in-memory client."""

import random
from datetime import datetime, timedelta, timezone

import pytest
from google.cloud import firestore

from catalog_automation.catalog import store as store_module
from catalog_automation.catalog.models import FixOutcome, NewsItem
from catalog_automation.catalog.store import CatalogStore, ContentMarkerStore, NewsStore
from catalog_automation.exceptions import PersistenceError
from catalog_automation.jobs.broadcast import FirestoreBroadcaster
from catalog_automation.jobs.locks import FirestoreLeaseLock, LockLostError
from catalog_automation.jobs.models import JobKind, RunReport
from catalog_automation.jobs.reports import ReportStore
from catalog_automation.jobs.settings import SettingsStore
from catalog_automation.jobs.watchdog import cleanup_expired_locks
from catalog_automation.quality.engine import QualityEngine
from catalog_automation.quality.models import FindingKind, QualityConfig
from tests.fakes import READ_AT, RecordingSink, make_record, mock_record
from tests.memory_firestore import MemoryFirestore, run_in_transaction


@pytest.fixture
def db(monkeypatch):
    monkeypatch.setattr(firestore, "transactional", run_in_transaction)
    monkeypatch.setattr("catalog_automation.retry.time.sleep", lambda _: None)
    return MemoryFirestore()


@pytest.fixture
def catalog(db):
    return CatalogStore(db)


def _seed(db, catalog, *records):
    for record in records:
        db.put(catalog.collection, record.id, record.to_dict())


# =============================================================================
# CatalogStore reads
# =============================================================================


class TestListRecords:

    def test_pages_through_collection_in_id_order(self, db, catalog, monkeypatch):
        monkeypatch.setattr(store_module, "PAGE_SIZE", 2)
        _seed(db, catalog, *[make_record(f"tool-{i}") for i in (3, 1, 5, 2, 4)])

        records = catalog.list_records()

        assert [r.id for r in records] == ["tool-1", "tool-2", "tool-3", "tool-4", "tool-5"]
        assert db.stream_calls == 3

    def test_max_records_stops_early(self, db, catalog, monkeypatch):
        monkeypatch.setattr(store_module, "PAGE_SIZE", 2)
        _seed(db, catalog, *[make_record(f"tool-{i}") for i in range(5)])

        records = catalog.list_records(max_records=3)

        assert [r.id for r in records] == ["tool-0", "tool-1", "tool-2"]
        assert db.stream_calls == 2

    def test_malformed_numbers_read_as_none(self, db, catalog):
        db.put(catalog.collection, "odd", {"name": "Odd", "rating": "abc", "weeklyUsers": "1200"})

        record = catalog.get_record("odd")

        assert record.rating is None
        assert record.weekly_users == 1200
        assert catalog.get_record("missing") is None


# =============================================================================
# CatalogStore writes
# =============================================================================


class TestUpsertRecord:

    def test_creates_new_record(self, db, catalog):
        assert catalog.upsert_record(make_record("fresh", updated_at=None)) is True

        stored = db.read(catalog.collection, "fresh")
        assert stored["name"] == "Notion AI"
        assert stored["created_at"] is not None
        assert stored["updated_at"] is not None

    def test_update_preserves_editorial_fields(self, db, catalog):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        _seed(db, catalog, make_record("tool", trending_score=3.5, created_at=created))

        created_flag = catalog.upsert_record(make_record("tool", description="Rewritten", trending_score=None))

        stored = db.read(catalog.collection, "tool")
        assert created_flag is False
        assert stored["description"] == "Rewritten"
        assert stored["trending_score"] == 3.5
        assert stored["created_at"] == created
        assert stored["updated_at"] > READ_AT

    def test_new_metrics_clear_previous_fix(self, db, catalog):
        fixed_at = datetime(2024, 4, 1, tzinfo=timezone.utc)
        _seed(db, catalog, make_record("tool", data_quality_fixed=True, auto_fixed_at=fixed_at))

        catalog.upsert_record(mock_record("tool"))

        stored = db.read(catalog.collection, "tool")
        assert stored["rating"] == 4.2
        assert stored["weekly_users"] == 150000
        assert stored["data_quality_fixed"] is False
        assert stored["auto_fixed_at"] is None

    def test_placeholder_values_from_discovery_are_flagged_again(self, db, catalog):
        _seed(db, catalog, make_record("tool", data_quality_fixed=True, auto_fixed_at=READ_AT))
        catalog.upsert_record(mock_record("tool"))

        engine = QualityEngine(catalog, rng=random.Random(1), alert_sinks=[RecordingSink()])
        report = engine.run_pass(QualityConfig(auto_fix=False))

        assert report.mock_data_records == 1
        assert [f.record_id for f in report.findings_of_kind(FindingKind.MOCK_DATA_SUSPECTED)] == ["tool"]

    def test_unchanged_metrics_keep_fix(self, db, catalog):
        _seed(db, catalog, make_record("tool", data_quality_fixed=True, auto_fixed_at=READ_AT))

        catalog.upsert_record(make_record("tool", description="New copy"))

        stored = db.read(catalog.collection, "tool")
        assert stored["data_quality_fixed"] is True
        assert stored["auto_fixed_at"] == READ_AT


class TestApplyFix:

    def test_applied_fix_is_stamped(self, db, catalog):
        _seed(db, catalog, mock_record("tool"))
        fixed_at = READ_AT + timedelta(hours=1)

        outcome = catalog.apply_fix("tool", {"rating": 4.6}, READ_AT, fixed_at=fixed_at)

        stored = db.read(catalog.collection, "tool")
        assert outcome is FixOutcome.APPLIED
        assert stored["rating"] == 4.6
        assert stored["data_quality_fixed"] is True
        assert stored["auto_fixed_at"] == fixed_at
        assert stored["updated_at"] == fixed_at

    def test_deleted_record_is_skipped(self, db, catalog):
        assert catalog.apply_fix("gone", {"rating": 4.6}, READ_AT) is FixOutcome.MISSING
        assert db.read(catalog.collection, "gone") is None

    def test_changed_record_is_skipped(self, db, catalog):
        _seed(db, catalog, mock_record("tool", updated_at=READ_AT + timedelta(minutes=5)))

        outcome = catalog.apply_fix("tool", {"rating": 4.6}, READ_AT)

        stored = db.read(catalog.collection, "tool")
        assert outcome is FixOutcome.CHANGED
        assert stored["rating"] == 4.2
        assert stored["data_quality_fixed"] is False

    def test_quality_pass_fixes_through_store(self, db, catalog):
        _seed(db, catalog, mock_record("tool"), make_record("clean"))

        engine = QualityEngine(catalog, rng=random.Random(1), alert_sinks=[RecordingSink()])
        report = engine.run_pass(QualityConfig(auto_fix=True))

        assert report.records_fixed == 1
        assert db.read(catalog.collection, "tool")["data_quality_fixed"] is True
        assert db.read(catalog.collection, "clean")["data_quality_fixed"] is False


class TestUpdateTrendingScores:

    def test_writes_scores_in_batches(self, db, catalog, monkeypatch):
        monkeypatch.setattr(store_module, "BATCH_SIZE", 2)
        _seed(db, catalog, *[make_record(f"tool-{i}") for i in range(3)])

        updated = catalog.update_trending_scores({"tool-0": 1.0, "tool-1": 2.0, "tool-2": 3.0})

        assert updated == 3
        assert db.commits == 2
        assert db.read(catalog.collection, "tool-2")["trending_score"] == 3.0

    def test_deleted_record_is_skipped(self, db, catalog):
        _seed(db, catalog, make_record("kept"))

        updated = catalog.update_trending_scores({"kept": 4.25, "gone": 1.0})

        assert updated == 1
        assert db.read(catalog.collection, "kept")["trending_score"] == 4.25
        assert db.read(catalog.collection, "gone") is None


# =============================================================================
# ReportStore tests
# =============================================================================


class TestReportStore:

    def test_save_and_read_latest(self, db):
        reports = ReportStore(db)
        report = RunReport(job_kind=JobKind.DISCOVERY, items_found=4, content_types=["tools"])

        assert reports.save(report) is True

        latest = reports.get_latest(JobKind.DISCOVERY)
        assert latest.items_found == 4
        assert latest.timestamp == report.timestamp
        assert reports.get_latest(JobKind.REFRESH) is None

    def test_older_report_never_replaces_newer(self, db):
        reports = ReportStore(db)
        newer = RunReport(job_kind=JobKind.REFRESH, items_found=2)
        older = RunReport(job_kind=JobKind.REFRESH, items_found=1,
                          timestamp=newer.timestamp - timedelta(minutes=5))

        assert reports.save(newer) is True
        assert reports.save(older) is False
        assert reports.get_latest(JobKind.REFRESH).items_found == 2

    def test_failed_write_leaves_previous_report(self, db):
        reports = ReportStore(db)
        previous = RunReport(job_kind=JobKind.REFRESH, items_found=1)
        reports.save(previous)
        db.failing_commits = 3

        with pytest.raises(PersistenceError):
            reports.save(RunReport(job_kind=JobKind.REFRESH, items_found=9,
                                   timestamp=previous.timestamp + timedelta(minutes=1)))

        assert reports.get_latest(JobKind.REFRESH).items_found == 1

    def test_transient_commit_failure_is_retried(self, db):
        reports = ReportStore(db)
        db.failing_commits = 1

        assert reports.save(RunReport(job_kind=JobKind.MANUAL_REFRESH)) is True
        assert reports.get_latest(JobKind.MANUAL_REFRESH) is not None


# =============================================================================
# Settings, news, markers and broadcast
# =============================================================================


class TestSettingsStore:

    def test_set_get_and_list(self, db):
        settings = SettingsStore(db)
        assert settings.get("auto_refresh_enabled", False) is False

        settings.set("auto_refresh_enabled", True)

        assert settings.get("auto_refresh_enabled") is True
        assert settings.list_settings() == [{"key": "auto_refresh_enabled", "value": True}]


class TestNewsStore:

    def test_counts_added_and_updated(self, db):
        news = NewsStore(db)
        created = datetime(2024, 3, 1, tzinfo=timezone.utc)
        db.put(news.collection, "old", {"id": "old", "title": "Old", "created_at": created})

        added, updated = news.upsert_items([
            NewsItem(id="old", title="Old, revised", source="TechCrunch"),
            NewsItem(id="new", title="New", source="The Verge"),
        ])

        assert (added, updated) == (1, 1)
        assert db.read(news.collection, "old")["title"] == "Old, revised"
        assert db.read(news.collection, "old")["created_at"] == created
        assert news.count_by_source() == {"TechCrunch": 1, "The Verge": 1}


class TestContentMarkerStore:

    def test_markers_newest_first(self, db):
        markers = ContentMarkerStore(db)
        markers.touch("tools", updated_by="refresh", when=READ_AT)
        markers.touch("news", updated_by="discovery", when=READ_AT + timedelta(hours=1))

        listed = markers.list_markers()

        assert [m["content_type"] for m in listed] == ["news", "tools"]
        assert listed[1]["updated_by"] == "refresh"


class TestBroadcasterStorage:

    def test_events_land_in_channel_subcollection(self, db):
        FirestoreBroadcaster(db, channel="automation-updates").publish("refresh", "done")

        events = [path for path in db.docs if path[:3] == ("broadcast_channels", "automation-updates", "events")]
        assert len(events) == 1
        assert db.docs[events[0]]["type"] == "refresh"


# =============================================================================
# FirestoreLeaseLock tests
# =============================================================================


class TestLeaseLock:

    def test_live_lock_blocks_other_owner(self, db):
        ours = FirestoreLeaseLock(db, owner_id="instance-a", lease_secs=60)
        theirs = FirestoreLeaseLock(db, owner_id="instance-b", lease_secs=60)

        assert ours.acquire("discovery", "run-1") is True
        assert theirs.acquire("discovery", "run-2") is False
        assert db.read(ours.collection, "discovery")["run_id"] == "run-1"

    def test_expired_lock_is_taken_over(self, db):
        lock = FirestoreLeaseLock(db, owner_id="instance-b")
        db.put(lock.collection, "refresh", {
            "run_id": "run-1", "owner_id": "instance-a",
            "expires_at": datetime.now(timezone.utc) - timedelta(minutes=1),
        })

        assert lock.acquire("refresh", "run-2") is True
        assert db.read(lock.collection, "refresh")["owner_id"] == "instance-b"

    def test_renew_extends_lease(self, db):
        lock = FirestoreLeaseLock(db, owner_id="instance-a", lease_secs=60)
        lock.acquire("refresh", "run-1")
        first_expiry = db.read(lock.collection, "refresh")["expires_at"]

        lock.lease_secs = 600
        lock.renew("refresh", "run-1")

        assert db.read(lock.collection, "refresh")["expires_at"] > first_expiry

    def test_renew_after_takeover_raises(self, db):
        lock = FirestoreLeaseLock(db, owner_id="instance-a")
        lock.acquire("refresh", "run-1")

        with pytest.raises(LockLostError):
            lock.renew("refresh", "run-other")

    def test_release_only_by_owner(self, db):
        ours = FirestoreLeaseLock(db, owner_id="instance-a")
        theirs = FirestoreLeaseLock(db, owner_id="instance-b")
        ours.acquire("discovery", "run-1")

        assert theirs.release("discovery", "run-1") is False
        assert db.read(ours.collection, "discovery") is not None
        assert ours.release("discovery", "run-1") is True
        assert db.read(ours.collection, "discovery") is None

    def test_watchdog_removes_expired_lock(self, db):
        lock = FirestoreLeaseLock(db, owner_id="instance-a", lease_secs=60)
        lock.acquire("discovery", "run-live")
        db.put(lock.collection, "refresh", {
            "run_id": "run-dead", "owner_id": "instance-b",
            "expires_at": datetime.now(timezone.utc) - timedelta(minutes=5),
        })

        results = cleanup_expired_locks(db, dry_run=False)

        assert results["cleaned"] == 1
        assert results["locks"][0]["run_id"] == "run-dead"
        assert db.read(lock.collection, "refresh") is None
        assert db.read(lock.collection, "discovery") is not None
