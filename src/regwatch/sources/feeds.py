"""Free government policy feeds (CMS and SAMHSA)."""

from __future__ import annotations

from typing import ClassVar

import httpx

from regwatch.core.constants import (
    ALERT_DESCRIPTION_MAX_LENGTH,
    ALERT_TITLE_MAX_LENGTH,
    LIFELINE_988_URL,
    LIFELINE_PROBE_TIMEOUT_SECONDS,
    POLICY_SUMMARY_MAX_LENGTH,
    POLICY_TITLE_MAX_LENGTH,
)
from regwatch.core.exceptions import FeedFetchError
from regwatch.core.logging import get_logger
from regwatch.ingestion.feeds import fetch_feed
from regwatch.processing.classifier import classify_severity, is_relevant
from regwatch.processing.models import (
    FeedItem,
    PolicyUpdate,
    Severity,
    SyncResult,
    SyncSource,
    SyncStatus,
)
from regwatch.sources.base import ComplianceSource, utcnow

logger = get_logger(__name__)


class PolicyFeedSource(ComplianceSource):
    """Polls a set of RSS feeds and stores relevant, previously unseen items.

    ``records_checked`` counts every item seen across all feeds before
    relevance filtering; ``records_updated`` counts new policy updates.
    """

    feeds_setting: ClassVar[str]
    policy_category: ClassVar[str]
    alert_category: ClassVar[str]
    # CMS announcements take effect on publication; SAMHSA ones carry no date
    effective_on_publication: ClassVar[bool] = False

    @property
    def feed_urls(self) -> list[str]:
        urls: list[str] = getattr(self._settings, self.feeds_setting)
        return urls

    async def _sync(self, result: SyncResult) -> None:
        client = self._get_client()
        failures: list[FeedFetchError] = []

        for url in self.feed_urls:
            try:
                items = await fetch_feed(client, url)
            except FeedFetchError as e:
                failures.append(e)
                continue

            result.records_checked += len(items)
            for item in items:
                await self._ingest_item(result, item)

        await self._after_feeds(result, client)

        if failures:
            message = "; ".join(e.message for e in failures)
            if len(failures) == len(self.feed_urls):
                result.fail(message)
            else:
                result.status = SyncStatus.partial
                result.error_message = message

    async def _ingest_item(self, result: SyncResult, item: FeedItem) -> None:
        text = item.text
        if not is_relevant(text):
            return
        if not item.link:
            logger.debug("Feed item without link skipped", source=self.source.value, title=item.title)
            return

        published_at = item.published_at or utcnow()
        update = PolicyUpdate(
            source=self.source,
            title=item.title[:POLICY_TITLE_MAX_LENGTH],
            summary=item.description[:POLICY_SUMMARY_MAX_LENGTH],
            category=self.policy_category,
            source_url=item.link,
            published_at=published_at,
        )
        if not await self._store_policy_update(result, update):
            return

        severity = classify_severity(text)
        if severity == Severity.info:
            return
        await self._raise_alert(
            severity=severity,
            category=self.alert_category,
            title=item.title[:ALERT_TITLE_MAX_LENGTH],
            description=item.description[:ALERT_DESCRIPTION_MAX_LENGTH],
            source_url=item.link,
            effective_at=published_at if self.effective_on_publication else None,
        )

    async def _after_feeds(self, result: SyncResult, client: httpx.AsyncClient) -> None:
        """Hook for source-specific checks once all feeds are processed."""


class CMSFeedSource(PolicyFeedSource):
    source = SyncSource.CMS
    sync_type = "rss_policy_feed"
    label = "CMS Policy Feeds"
    feeds_setting = "cms_feed_urls"
    policy_category = "policy_update"
    alert_category = "federal_policy"
    effective_on_publication = True


LIFELINE_DISRUPTION_TERMS = ("service disruption", "outage", "maintenance")
CRISIS_LINE_CATEGORY = "crisis_line_status"


class SAMHSAFeedSource(PolicyFeedSource):
    """SAMHSA news and grants feeds, plus a 988 Lifeline status probe."""

    source = SyncSource.SAMHSA
    sync_type = "behavioral_health_policy"
    label = "SAMHSA Behavioral Health"
    feeds_setting = "samhsa_feed_urls"
    policy_category = "samhsa_update"
    alert_category = "behavioral_health_policy"

    async def _after_feeds(self, result: SyncResult, client: httpx.AsyncClient) -> None:
        await self._probe_988_lifeline(result, client)

    async def _probe_988_lifeline(self, result: SyncResult, client: httpx.AsyncClient) -> None:
        """Best-effort scan of the 988 Lifeline site for disruption notices."""
        try:
            response = await client.get(LIFELINE_988_URL, timeout=LIFELINE_PROBE_TIMEOUT_SECONDS)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("988 Lifeline probe failed", error=str(e))
            return

        page = response.text.lower()
        if not any(term in page for term in LIFELINE_DISRUPTION_TERMS):
            return

        # One open alert is enough until an admin dismisses it
        if await self._db.has_active_alert(CRISIS_LINE_CATEGORY):
            logger.info("988 Lifeline disruption notice still open, not re-alerting")
            return

        await self._raise_alert(
            severity=Severity.critical,
            category=CRISIS_LINE_CATEGORY,
            title="988 Lifeline Potential Service Disruption Detected",
            description=(
                "A potential service disruption or maintenance notice was detected on the "
                "988 Lifeline website. Verify current status and update crisis resources if needed."
            ),
            source_url=LIFELINE_988_URL,
        )
        result.changes_detected += 1
