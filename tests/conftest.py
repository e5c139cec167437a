"""Shared fixtures for catalog automation tests."""

from __future__ import annotations

import pytest

from catalog_automation.jobs.handlers import JobHandlers
from catalog_automation.jobs.orchestrator import JobOrchestrator
from catalog_automation.jobs.registry import TaskRegistry
from tests.fakes import (
    FakeBroadcaster,
    FakeCatalogStore,
    FakeInvalidator,
    FakeMarkerStore,
    FakeNewsStore,
    FakeProducer,
    FakeReportStore,
    FakeSettingsStore,
    make_record,
)


@pytest.fixture
def catalog_store():
    return FakeCatalogStore([make_record()])


@pytest.fixture
def producer():
    return FakeProducer(
        tools=[
            {"name": "Chat Helper", "description": "Chat assistant for teams",
             "website": "https://chathelper.io", "rating": 4.4, "source": "Product Hunt"},
            {"name": "Pixel Forge", "description": "Image generation studio",
             "website": "https://pixelforge.ai", "rating": 4.1, "source": "GitHub"},
        ],
        news=[{"title": "New model released", "url": "https://news.example.com/1", "source": "TechCrunch"}],
    )


@pytest.fixture
def orchestrator_parts(catalog_store, producer):
    return {
        "catalog_store": catalog_store,
        "news_store": FakeNewsStore(),
        "producer": producer,
        "report_store": FakeReportStore(),
        "settings_store": FakeSettingsStore(),
        "invalidator": FakeInvalidator(),
        "broadcaster": FakeBroadcaster(),
        "marker_store": FakeMarkerStore(),
    }


@pytest.fixture
def make_orchestrator(orchestrator_parts):
    created = []

    def factory(**overrides):
        parts = dict(orchestrator_parts)
        parts.update(overrides)
        handlers = JobHandlers(parts["catalog_store"], parts["news_store"], parts["producer"])
        orchestrator = JobOrchestrator(
            report_store=parts["report_store"],
            settings_store=parts["settings_store"],
            handlers=handlers,
            registry=parts.get("registry") or TaskRegistry(max_workers=4),
            invalidator=parts["invalidator"],
            broadcaster=parts["broadcaster"],
            marker_store=parts["marker_store"],
            run_timeout_secs=parts.get("run_timeout_secs", 5),
            auto_refresh_interval_secs=parts.get("auto_refresh_interval_secs", 60),
        )
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        orchestrator.shutdown(wait=False)


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()
