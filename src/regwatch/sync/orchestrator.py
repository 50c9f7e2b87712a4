"""Full compliance sync: runs every enabled source in order and logs each run."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

from regwatch.config import Settings, load_settings
from regwatch.core.logging import get_logger
from regwatch.processing.models import IntegrationStatus, SyncResult, SyncStatus
from regwatch.sources import (
    CMSFeedSource,
    CodeRegistrySource,
    ComplianceSource,
    LexisNexisSource,
    SAMHSAFeedSource,
    WestlawSource,
)

if TYPE_CHECKING:
    import httpx

    from regwatch.processing.alerts import AlertService
    from regwatch.storage.database import Database

logger = get_logger(__name__)

# Free sources always run; paid ones only when configured
CORE_SOURCES: tuple[type[ComplianceSource], ...] = (
    CMSFeedSource,
    CodeRegistrySource,
    SAMHSAFeedSource,
)
OPTIONAL_SOURCES: tuple[type[ComplianceSource], ...] = (LexisNexisSource, WestlawSource)


def integration_statuses(settings: Settings) -> dict[str, IntegrationStatus]:
    """Enabled/disabled view of each external integration for the summary."""

    def optional(source_cls: type[ComplianceSource]) -> IntegrationStatus:
        missing = source_cls.missing_credentials(settings)
        return IntegrationStatus(
            enabled=not missing,
            label=source_cls.label,
            reason=f"missing {', '.join(missing)}" if missing else None,
        )

    return {
        "cms": IntegrationStatus(enabled=True, label="CMS (free RSS + CPT registry)"),
        "samhsa": IntegrationStatus(enabled=True, label="SAMHSA (free RSS + 988 status)"),
        "lexisnexis": optional(LexisNexisSource),
        "westlaw": optional(WestlawSource),
    }


class ComplianceSyncOrchestrator:
    """Runs the full sync. Overlapping calls are serialized, never interleaved."""

    def __init__(
        self,
        db: Database,
        alerts: AlertService,
        settings_factory: Callable[[], Settings] = load_settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._db = db
        self._alerts = alerts
        self._settings_factory = settings_factory
        self._http_client = http_client
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def build_sources(self, settings: Settings) -> list[ComplianceSource]:
        """Instantiate the sources for one run, in execution order."""
        sources: list[ComplianceSource] = [
            source_cls(self._db, self._alerts, settings, http_client=self._http_client)
            for source_cls in CORE_SOURCES
        ]
        for source_cls in OPTIONAL_SOURCES:
            if source_cls.is_configured(settings):
                sources.append(
                    source_cls(self._db, self._alerts, settings, http_client=self._http_client)
                )
            else:
                logger.debug("Optional source skipped", source=source_cls.source.value)
        return sources

    async def run_full(self) -> list[SyncResult]:
        """Run every enabled source sequentially. Never raises."""
        if self._lock.locked():
            logger.info("Compliance sync already in progress, waiting")

        async with self._lock:
            settings = self._settings_factory()
            logger.info("Compliance sync started")

            results: list[SyncResult] = []
            for source in self.build_sources(settings):
                result = await self._run_source(source)
                results.append(result)
                await self._record(result)

            logger.info(
                "Compliance sync complete",
                sources=len(results),
                total_changes=sum(r.changes_detected for r in results),
                total_updates=sum(r.records_updated for r in results),
                failed=[r.source.value for r in results if r.status == SyncStatus.failed],
            )
            return results

    async def _run_source(self, source: ComplianceSource) -> SyncResult:
        try:
            return await source.run()
        except Exception as e:
            logger.exception("Source run escaped its own error handling", source=source.source.value)
            result = SyncResult(source=source.source, sync_type=source.sync_type)
            return result.fail(f"{source.label} sync error: {e}")

    async def _record(self, result: SyncResult) -> None:
        try:
            await self._db.insert_sync_log(result)
        except Exception as e:
            logger.error(
                "Failed to write sync log",
                source=result.source.value,
                sync_type=result.sync_type,
                error=str(e),
            )
