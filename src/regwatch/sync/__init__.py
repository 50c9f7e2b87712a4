"""Sync orchestration."""

from regwatch.sync.orchestrator import ComplianceSyncOrchestrator, integration_statuses

__all__ = ["ComplianceSyncOrchestrator", "integration_statuses"]
