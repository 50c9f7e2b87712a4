"""Record shapes for the compliance monitoring pipeline.

Every source adapter normalizes what it fetches into these models:
- FeedItem: one entry extracted from a policy feed
- PolicyUpdate / CodeDefinition: deduplicated records persisted per source
- Alert: something a human should look at
- SyncResult / SyncLogEntry: the auditable outcome of one adapter run
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

# =============================================================================
# Enumerations
# =============================================================================


class SyncSource(str, Enum):
    """Information source a record or run originated from."""

    CMS = "CMS"
    SAMHSA = "SAMHSA"
    LEXISNEXIS = "LEXISNEXIS"
    WESTLAW = "WESTLAW"
    MANUAL = "MANUAL"


class Severity(str, Enum):
    """Alert severity. Anything above info is paged to the operator."""

    info = "info"
    warning = "warning"
    critical = "critical"


class SyncStatus(str, Enum):
    success = "success"
    partial = "partial"
    failed = "failed"


class CodeUpsertOutcome(str, Enum):
    inserted = "inserted"
    updated = "updated"
    unchanged = "unchanged"


# =============================================================================
# Ingested records
# =============================================================================


class FeedItem(BaseModel):
    """A single entry extracted from an RSS/Atom feed."""

    title: str
    description: str = ""
    link: str = ""
    published_at: datetime | None = None

    @property
    def text(self) -> str:
        """Title and description joined, as fed to the classifiers."""
        return f"{self.title} {self.description}"


class PolicyUpdate(BaseModel):
    """A policy announcement, deduplicated by source URL."""

    id: int | None = None
    source: SyncSource
    title: str
    summary: str = ""
    category: str
    source_url: str
    published_at: datetime
    effective_at: datetime | None = None
    is_read: bool = False
    created_at: datetime | None = None


class CodeDefinition(BaseModel):
    """Procedure-code registry entry, keyed by code."""

    code: str
    description: str
    category: str
    min_duration_min: int
    max_duration_min: int
    is_active: bool = True
    last_verified_at: datetime | None = None
    source_url: str | None = None

    @property
    def duration_range(self) -> tuple[int, int]:
        return (self.min_duration_min, self.max_duration_min)

    def differs_from(self, other: "CodeDefinition") -> bool:
        """True if the documented meaning (description or duration) changed."""
        return self.description != other.description or self.duration_range != other.duration_range


class Alert(BaseModel):
    """A compliance alert. Severity is fixed at creation; only dismissal changes."""

    id: int | None = None
    source: SyncSource
    severity: Severity
    category: str
    title: str
    description: str
    affected_jurisdictions: list[str] | None = None
    source_url: str | None = None
    effective_at: datetime | None = None
    dismissed_at: datetime | None = None
    dismissed_by: str | None = None
    created_at: datetime | None = None

    @property
    def is_dismissed(self) -> bool:
        return self.dismissed_at is not None


# =============================================================================
# Sync outcomes
# =============================================================================


class SyncResult(BaseModel):
    """Outcome of one adapter run."""

    source: SyncSource
    sync_type: str
    status: SyncStatus = SyncStatus.success
    records_checked: int = 0
    records_updated: int = 0
    changes_detected: int = 0
    error_message: str | None = None

    def record_change(self) -> None:
        """Count one newly written record."""
        self.records_updated += 1
        self.changes_detected += 1

    def fail(self, message: str) -> "SyncResult":
        """Mark the run failed, or partial if it already wrote records."""
        self.status = SyncStatus.partial if self.records_updated > 0 else SyncStatus.failed
        self.error_message = message
        return self


class SyncLogEntry(SyncResult):
    """Persisted, append-only record of a SyncResult."""

    id: int | None = None
    synced_at: datetime


# =============================================================================
# Summary view
# =============================================================================


class IntegrationStatus(BaseModel):
    enabled: bool
    label: str
    reason: str | None = None


class ComplianceSummary(BaseModel):
    """Aggregate shown on the admin dashboard."""

    critical_alerts: int = 0
    warning_alerts: int = 0
    total_active_alerts: int = 0
    unread_policy_updates: int = 0
    last_sync_at: datetime | None = None
    integrations: dict[str, IntegrationStatus] = Field(default_factory=dict)
