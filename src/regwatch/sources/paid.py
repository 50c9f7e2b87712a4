"""Paid regulatory-intelligence providers (LexisNexis, Westlaw).

Both are optional: they only run when their credentials are present in
the environment at the start of a sync run.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, ClassVar

import httpx

from regwatch.core.constants import (
    ALERT_DESCRIPTION_MAX_LENGTH,
    ALERT_TITLE_MAX_LENGTH,
    LEXISNEXIS_SEARCH_URL,
    PAID_PROVIDER_LOOKBACK_DAYS,
    PAID_PROVIDER_TIMEOUT_SECONDS,
    POLICY_CATEGORY_MAX_LENGTH,
    POLICY_SUMMARY_MAX_LENGTH,
    POLICY_TITLE_MAX_LENGTH,
    WESTLAW_SEARCH_URL,
)
from regwatch.core.exceptions import ProviderAPIError
from regwatch.core.logging import get_logger
from regwatch.processing.models import PolicyUpdate, Severity, SyncResult, SyncSource
from regwatch.sources.base import ComplianceSource, parse_timestamp, utcnow

logger = get_logger(__name__)

DEFAULT_TITLE = "Regulatory Update"
DEFAULT_CATEGORY = "regulatory_change"

US_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)  # fmt: skip

WESTLAW_JURISDICTIONS = ["US-FED", *(f"US-{state}" for state in US_STATES)]


@dataclass
class ProviderItem:
    """Normalized view of one provider search hit."""

    title: str
    summary: str
    url: str
    published_at: datetime | None
    effective_at: datetime | None
    category: str
    jurisdictions: list[str] | None


class PaidProviderSource(ComplianceSource):
    """Shared search-and-ingest flow for the paid providers."""

    alert_category: ClassVar[str]

    async def _sync(self, result: SyncResult) -> None:
        hits = await self._search()
        result.records_checked = len(hits)

        for hit in hits:
            item = self._to_item(hit)
            if item is None:
                continue
            await self._ingest(result, item)

    async def _search(self) -> list[dict[str, Any]]:
        try:
            response = await self._request(self._get_client())
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderAPIError(
                f"{self.label} API error: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.RequestError as e:
            raise ProviderAPIError(f"{self.label} API error: {e}") from e
        except ValueError as e:
            raise ProviderAPIError(f"{self.label} API error: invalid JSON response") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [hit for hit in results if isinstance(hit, dict)]

    @abstractmethod
    async def _request(self, client: httpx.AsyncClient) -> httpx.Response:
        """Send the provider search request."""

    @abstractmethod
    def _to_item(self, hit: dict[str, Any]) -> ProviderItem | None:
        """Map one search hit; None skips it."""

    async def _ingest(self, result: SyncResult, item: ProviderItem) -> None:
        update = PolicyUpdate(
            source=self.source,
            title=item.title[:POLICY_TITLE_MAX_LENGTH],
            summary=item.summary[:POLICY_SUMMARY_MAX_LENGTH],
            category=item.category[:POLICY_CATEGORY_MAX_LENGTH],
            source_url=item.url,
            published_at=item.published_at or utcnow(),
            effective_at=item.effective_at,
        )
        if not await self._store_policy_update(result, update):
            return

        await self._raise_alert(
            severity=Severity.warning,
            category=self.alert_category,
            title=item.title[:ALERT_TITLE_MAX_LENGTH],
            description=item.summary[:ALERT_DESCRIPTION_MAX_LENGTH],
            source_url=item.url,
            effective_at=item.effective_at,
            affected_jurisdictions=item.jurisdictions,
        )


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class LexisNexisSource(PaidProviderSource):
    """LexisNexis Regulatory Tracker: state telehealth, licensure and reporting rules."""

    source = SyncSource.LEXISNEXIS
    sync_type = "regulatory_tracker"
    label = "LexisNexis"
    required_credentials = ("LEXISNEXIS_API_KEY",)
    alert_category = "state_regulatory_change"

    async def _request(self, client: httpx.AsyncClient) -> httpx.Response:
        return await client.get(
            LEXISNEXIS_SEARCH_URL,
            headers={"Authorization": f"Bearer {self._credential('LEXISNEXIS_API_KEY')}"},
            params={
                "query": "mental health telehealth therapy licensure mandatory reporting",
                "jurisdiction": "US",
                "dateRange": "last_30_days",
                "category": "healthcare",
            },
            timeout=PAID_PROVIDER_TIMEOUT_SECONDS,
        )

    def _to_item(self, hit: dict[str, Any]) -> ProviderItem | None:
        url = _text(hit.get("url")).strip()
        if not url:
            logger.debug("LexisNexis result without url skipped", title=hit.get("title"))
            return None
        states = hit.get("states")
        return ProviderItem(
            title=_text(hit.get("title")) or DEFAULT_TITLE,
            summary=_text(hit.get("summary")) or _text(hit.get("description")),
            url=url,
            published_at=parse_timestamp(hit.get("date")),
            effective_at=parse_timestamp(hit.get("effectiveDate")),
            category=_text(hit.get("category")) or DEFAULT_CATEGORY,
            jurisdictions=[str(s) for s in states] if isinstance(states, list) else None,
        )


class WestlawSource(PaidProviderSource):
    """Westlaw Edge: regulations, statutes and administrative code, federal and all states."""

    source = SyncSource.WESTLAW
    sync_type = "case_law_regulatory"
    label = "Westlaw"
    required_credentials = ("WESTLAW_API_KEY", "WESTLAW_CLIENT_ID")
    alert_category = "case_law_change"

    async def _request(self, client: httpx.AsyncClient) -> httpx.Response:
        since = utcnow() - timedelta(days=PAID_PROVIDER_LOOKBACK_DAYS)
        return await client.post(
            WESTLAW_SEARCH_URL,
            headers={
                "Authorization": f"Bearer {self._credential('WESTLAW_API_KEY')}",
                "X-Client-ID": self._credential("WESTLAW_CLIENT_ID"),
            },
            json={
                "query": "mental health therapy telehealth licensure mandatory reporting HIPAA",
                "dateRange": {"from": since.isoformat()},
                "contentTypes": ["REGULATIONS", "STATUTES", "ADMINISTRATIVE_CODE"],
                "jurisdiction": WESTLAW_JURISDICTIONS,
            },
            timeout=PAID_PROVIDER_TIMEOUT_SECONDS,
        )

    def _to_item(self, hit: dict[str, Any]) -> ProviderItem | None:
        url = _text(hit.get("url")).strip()
        if not url:
            logger.debug("Westlaw result without url skipped", title=hit.get("title"))
            return None
        content_type = _text(hit.get("contentType"))
        jurisdiction = _text(hit.get("jurisdiction"))
        return ProviderItem(
            title=_text(hit.get("title")) or DEFAULT_TITLE,
            summary=_text(hit.get("summary")),
            url=url,
            published_at=parse_timestamp(hit.get("date")),
            effective_at=parse_timestamp(hit.get("effectiveDate")),
            category=content_type.lower() or DEFAULT_CATEGORY,
            jurisdictions=[jurisdiction] if jurisdiction else None,
        )
