"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from regwatch.agent.scheduler import DailySyncScheduler
from regwatch.api import api_router
from regwatch.config import get_settings
from regwatch.core.dependencies import DbDep, SchedulerDep
from regwatch.core.exceptions import StoreUnavailableError
from regwatch.core.logging import get_logger, setup_logging
from regwatch.processing.alerts import AlertService
from regwatch.storage.database import STORE_ERRORS, close_database, get_database, init_database
from regwatch.sync.orchestrator import ComplianceSyncOrchestrator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: wires the store, sync pipeline and daily scheduler."""
    settings = get_settings()
    setup_logging(settings)

    try:
        db = await init_database(settings.database_url)
        await db.apply_schema()
    except STORE_ERRORS as e:
        # Without a pool, the next store ping (sync run or /ready) reconnects
        logger.error("Database unavailable at startup", error=str(e))
        db = get_database()
        await db.disconnect()

    alerts = AlertService(db)
    orchestrator = ComplianceSyncOrchestrator(db, alerts)
    scheduler = DailySyncScheduler(orchestrator.run_full, target_hour=settings.sync_hour_utc)

    app.state.db = db
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler

    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Compliance scheduler disabled")

    logger.info("Regwatch ready", env=settings.env)
    try:
        yield
    finally:
        scheduler.stop()
        await close_database()
        logger.info("Regwatch shutdown complete")


app = FastAPI(
    title="Regwatch",
    description="Regulatory compliance monitoring for behavioral-health practices",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.warning("Request failed, store unavailable", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=503, content={"detail": "Store unavailable"})


# Infrastructure (no prefix, not versioned)


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check, always ok if process is running."""
    return {"status": "ok"}


@app.get("/ready")
async def ready(db: DbDep, scheduler: SchedulerDep) -> dict[str, str]:
    """Readiness check: verifies the store answers and reports scheduler state."""
    checks: dict[str, str] = {}
    checks["db"] = "ok" if await db.ping() else "error"
    if scheduler is None:
        checks["scheduler"] = "disabled"
    else:
        checks["scheduler"] = "armed" if scheduler.is_armed else "idle"
    status = "ready" if all(v != "error" for v in checks.values()) else "not_ready"
    return {"status": status, **checks}


# Domain API
app.include_router(api_router, prefix="/api/v1")
