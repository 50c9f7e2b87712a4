"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from regwatch.agent.scheduler import DailySyncScheduler
from regwatch.config import Settings, get_settings
from regwatch.storage.database import Database
from regwatch.sync.orchestrator import ComplianceSyncOrchestrator

# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]


@dataclass(frozen=True)
class AdminPrincipal:
    """The admin acting on a request. ``admin_id`` comes from X-Admin-Id."""

    admin_id: str | None


def get_db(request: Request) -> Database:
    """Get database from app.state (set during lifespan)."""
    return request.app.state.db  # type: ignore[no-any-return]


def get_orchestrator(request: Request) -> ComplianceSyncOrchestrator:
    return request.app.state.orchestrator  # type: ignore[no-any-return]


def get_scheduler(request: Request) -> DailySyncScheduler | None:
    return getattr(request.app.state, "scheduler", None)


async def require_admin(
    settings: SettingsDep,
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
    x_admin_id: str | None = Header(default=None, alias="X-Admin-Id"),
) -> AdminPrincipal:
    """Gate admin-only endpoints on the shared admin API key."""
    if settings.admin_api_key is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access not configured (no REGWATCH_ADMIN_API_KEY)",
        )
    if not x_admin_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin auth requires X-Admin-Key",
        )
    expected = settings.admin_api_key.get_secret_value()
    if not hmac.compare_digest(x_admin_key.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")

    admin_id = x_admin_id.strip() if x_admin_id else None
    return AdminPrincipal(admin_id=admin_id or None)


# Annotated dependencies for use in route handlers
DbDep = Annotated[Database, Depends(get_db)]
OrchestratorDep = Annotated[ComplianceSyncOrchestrator, Depends(get_orchestrator)]
SchedulerDep = Annotated[DailySyncScheduler | None, Depends(get_scheduler)]
AdminDep = Annotated[AdminPrincipal, Depends(require_admin)]
