"""Smoke tests against the public CMS and SAMHSA feeds.

Run with: pytest -m integration

No credentials required. LexisNexis and Westlaw are only exercised when
LEXISNEXIS_API_KEY / WESTLAW_API_KEY and WESTLAW_CLIENT_ID are set.
"""

from typing import Any

import httpx
import pytest
from fakes import FakeDatabase, RecordingSink

from regwatch.ingestion.feeds import fetch_feed
from regwatch.processing.alerts import AlertService
from regwatch.processing.models import SyncStatus
from regwatch.sync.orchestrator import ComplianceSyncOrchestrator


@pytest.mark.integration
class TestLiveFeeds:
    async def test_cms_feeds_parse(self, live_settings: Any) -> None:
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            for url in live_settings.cms_feed_urls:
                items = await fetch_feed(client, url)
                assert all(item.title for item in items)

    async def test_full_sync_against_memory_store(self, live_settings: Any) -> None:
        db = FakeDatabase()
        orchestrator = ComplianceSyncOrchestrator(
            db, AlertService(db, RecordingSink()), settings_factory=lambda: live_settings
        )

        results = await orchestrator.run_full()

        assert len(results) >= 3
        registry = next(r for r in results if r.sync_type == "cpt_codes")
        assert registry.status == SyncStatus.success
        assert len(db.codes) == 20
        assert len(db.sync_logs) == len(results)
