"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest
from fakes import FakeDatabase, RecordingSink, make_settings

from regwatch.config import Settings
from regwatch.processing.alerts import AlertService


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def alert_service(fake_db: FakeDatabase, sink: RecordingSink) -> AlertService:
    return AlertService(fake_db, sink=sink)  # type: ignore[arg-type]


@pytest.fixture()
def settings() -> Settings:
    return make_settings(
        cms_feed_urls=["https://cms.test/news.xml", "https://cms.test/bh.xml"],
        samhsa_feed_urls=["https://samhsa.test/news.xml"],
        adapter_timeout_seconds=5.0,
    )
