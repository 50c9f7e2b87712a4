"""Common contract for compliance sources.

Every source wraps exactly one external information source and turns one
invocation into exactly one SyncResult. Failures never escape ``run()``:
missing credentials, an unreachable store, transport errors, timeouts and
unexpected exceptions are all reported through the result's status and
error message so that one broken source cannot take down the others.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from regwatch.core.constants import STORE_UNAVAILABLE_MESSAGE
from regwatch.core.exceptions import MissingCredentialsError, RegwatchError
from regwatch.core.logging import get_logger
from regwatch.processing.models import (
    Alert,
    PolicyUpdate,
    Severity,
    SyncResult,
    SyncSource,
    SyncStatus,
)

if TYPE_CHECKING:
    from regwatch.config import Settings
    from regwatch.processing.alerts import AlertService
    from regwatch.storage.database import Database

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort ISO-8601 parsing for provider payloads; naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ComplianceSource(ABC):
    """Base class for all sources.

    Subclasses set the class attributes and implement ``_sync``, which fills
    in the counters of the result it is given. ``run`` handles credential
    gating, the store availability check, the per-run timeout and error
    capture.
    """

    source: ClassVar[SyncSource]
    sync_type: ClassVar[str]
    label: ClassVar[str]
    # Environment variable names; the matching Settings field is the lowercase name
    required_credentials: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        db: Database,
        alerts: AlertService,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._db = db
        self._alerts = alerts
        self._settings = settings
        self._client = http_client
        self._owns_client = False

    # ─────────────────────────────────────────────────────────────
    # Enablement
    # ─────────────────────────────────────────────────────────────

    @classmethod
    def missing_credentials(cls, settings: Settings) -> list[str]:
        """Credential variables this source needs that are unset in ``settings``."""
        return [
            name
            for name in cls.required_credentials
            if getattr(settings, name.lower(), None) is None
        ]

    @classmethod
    def is_configured(cls, settings: Settings) -> bool:
        return not cls.missing_credentials(settings)

    def _credential(self, name: str) -> str:
        secret = getattr(self._settings, name.lower())
        return str(secret.get_secret_value())

    # ─────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client for this run."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self._settings.user_agent},
                timeout=self._settings.http_timeout_seconds,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def _close_client(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    # ─────────────────────────────────────────────────────────────
    # Run
    # ─────────────────────────────────────────────────────────────

    def _new_result(self) -> SyncResult:
        return SyncResult(source=self.source, sync_type=self.sync_type)

    async def run(self) -> SyncResult:
        """Run one sync against this source. Never raises."""
        result = self._new_result()
        log = logger.bind(source=self.source.value, sync_type=self.sync_type)

        missing = self.missing_credentials(self._settings)
        if missing:
            result.status = SyncStatus.failed
            result.error_message = MissingCredentialsError(self.label, missing).message
            log.info("Source not configured", missing=missing)
            return result

        if not await self._db.ping():
            result.status = SyncStatus.failed
            result.error_message = STORE_UNAVAILABLE_MESSAGE
            log.error("Store unavailable, skipping source")
            return result

        timeout = self._settings.adapter_timeout_seconds
        log.info("Source sync started")
        try:
            await asyncio.wait_for(self._sync(result), timeout=timeout)
        except asyncio.TimeoutError:
            result.fail(f"{self.label} sync timed out after {timeout:g}s")
            log.error("Source sync timed out", timeout=timeout)
        except RegwatchError as e:
            result.fail(e.message)
            log.error("Source sync failed", error=e.message)
        except Exception as e:
            result.fail(f"{self.label} sync error: {e}")
            log.exception("Source sync raised unexpectedly")
        finally:
            await self._close_client()

        log.info(
            "Source sync finished",
            status=result.status.value,
            records_checked=result.records_checked,
            records_updated=result.records_updated,
            changes_detected=result.changes_detected,
        )
        return result

    @abstractmethod
    async def _sync(self, result: SyncResult) -> None:
        """Fetch, reconcile and alert; update ``result`` counters in place."""

    # ─────────────────────────────────────────────────────────────
    # Shared ingestion
    # ─────────────────────────────────────────────────────────────

    async def _store_policy_update(self, result: SyncResult, update: PolicyUpdate) -> bool:
        """Insert a policy update if its URL is new and count it.

        Returns:
            True if the update was newly stored
        """
        if await self._db.has_seen_policy_url(update.source_url):
            return False
        # The unique constraint settles races with a concurrent run
        if not await self._db.insert_policy_update_if_new(update):
            return False
        result.record_change()
        return True

    async def _raise_alert(
        self,
        severity: Severity,
        category: str,
        title: str,
        description: str,
        source_url: str | None = None,
        effective_at: datetime | None = None,
        affected_jurisdictions: list[str] | None = None,
    ) -> int:
        return await self._alerts.create_alert(
            Alert(
                source=self.source,
                severity=severity,
                category=category,
                title=title,
                description=description,
                source_url=source_url,
                effective_at=effective_at,
                affected_jurisdictions=affected_jurisdictions,
            )
        )
