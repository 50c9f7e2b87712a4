"""Compliance query and admin endpoints."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from regwatch.config import load_settings
from regwatch.core.constants import (
    ACTIVE_ALERTS_PAGE_SIZE,
    POLICY_UPDATES_DEFAULT_LIMIT,
    SYNC_LOGS_DEFAULT_LIMIT,
)
from regwatch.core.dependencies import AdminDep, DbDep, OrchestratorDep
from regwatch.core.logging import get_logger
from regwatch.processing.models import (
    Alert,
    ComplianceSummary,
    PolicyUpdate,
    SyncLogEntry,
    SyncResult,
)
from regwatch.sync.orchestrator import integration_statuses

logger = get_logger(__name__)

router = APIRouter()


class SyncResponse(BaseModel):
    results: list[SyncResult]


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/alerts")
async def list_active_alerts(db: DbDep) -> list[Alert]:
    """Undismissed alerts, newest first."""
    return await db.get_active_alerts(limit=ACTIVE_ALERTS_PAGE_SIZE)


@router.get("/sync-logs")
async def list_sync_logs(
    db: DbDep,
    limit: int = Query(default=SYNC_LOGS_DEFAULT_LIMIT, ge=1, le=200),
) -> list[SyncLogEntry]:
    return await db.get_recent_sync_logs(limit=limit)


@router.get("/policy-updates")
async def list_policy_updates(
    db: DbDep,
    limit: int = Query(default=POLICY_UPDATES_DEFAULT_LIMIT, ge=1, le=200),
) -> list[PolicyUpdate]:
    return await db.get_recent_policy_updates(limit=limit)


@router.get("/summary")
async def compliance_summary(db: DbDep) -> ComplianceSummary:
    counts = await db.get_summary_counts()
    return ComplianceSummary(
        **counts,
        # Credentials can be added without a restart, so read them fresh
        integrations=integration_statuses(load_settings()),
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@router.post("/sync")
async def trigger_sync(admin: AdminDep, orchestrator: OrchestratorDep) -> SyncResponse:
    """Run a full sync now and wait for it to finish."""
    logger.info("Manual compliance sync requested", admin_id=admin.admin_id)
    results = await orchestrator.run_full()
    return SyncResponse(results=results)


@router.post("/alerts/{alert_id}/dismiss")
async def dismiss_alert(alert_id: int, admin: AdminDep, db: DbDep) -> SuccessResponse:
    if not admin.admin_id:
        raise HTTPException(status_code=400, detail="X-Admin-Id header is required")
    if not await db.dismiss_alert(alert_id, admin.admin_id):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return SuccessResponse()


@router.post("/policy-updates/{update_id}/read")
async def mark_policy_update_read(update_id: int, db: DbDep) -> SuccessResponse:
    if not await db.mark_policy_update_read(update_id):
        raise HTTPException(status_code=404, detail=f"Policy update {update_id} not found")
    return SuccessResponse()
