"""Daily compliance sync scheduler.

Fires once a day at a fixed UTC hour. After each firing the next run is
armed 24 hours later, so the wall-clock time drifts by however long the
job took rather than snapping back to the target hour.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from regwatch.core.constants import DEFAULT_SYNC_HOUR_UTC, RESCHEDULE_INTERVAL_HOURS
from regwatch.core.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "compliance_daily_sync"

Clock = Callable[[], datetime]
SyncJob = Callable[[], Awaitable[object]]


def create_scheduler() -> AsyncIOScheduler:
    """Create a new scheduler instance."""
    return AsyncIOScheduler(timezone="UTC")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_run_at(target_hour: int, now: datetime) -> datetime:
    """Next ``target_hour:00`` UTC strictly after ``now``."""
    if not 0 <= target_hour <= 23:
        raise ValueError(f"target_hour must be in 0..23, got {target_hour}")
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    candidate = now.replace(hour=target_hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def seconds_until_next_run(target_hour: int, now: datetime) -> float:
    """Seconds from ``now`` until the next daily run. Always positive."""
    return (next_run_at(target_hour, now) - now.astimezone(timezone.utc)).total_seconds()


class DailySyncScheduler:
    """Holds at most one pending one-shot run of the daily sync.

    Idle until ``start()``; armed from then on until ``stop()``. Errors
    raised by the job are logged and never stop the schedule.
    """

    def __init__(
        self,
        job: SyncJob,
        target_hour: int = DEFAULT_SYNC_HOUR_UTC,
        scheduler: AsyncIOScheduler | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        if not 0 <= target_hour <= 23:
            raise ValueError(f"target_hour must be in 0..23, got {target_hour}")
        self._job = job
        self._target_hour = target_hour
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler if scheduler is not None else create_scheduler()
        self._clock = clock
        self._active = False
        self._next_run_at: datetime | None = None

    @property
    def is_armed(self) -> bool:
        return self._active and self._next_run_at is not None

    @property
    def next_run_at(self) -> datetime | None:
        return self._next_run_at

    def start(self) -> None:
        """Arm the first run. Calling start on an armed scheduler is a no-op."""
        if self._active:
            logger.debug("Compliance scheduler already armed", next_run_at=self._next_run_at)
            return

        if not self._scheduler.running:
            self._scheduler.start()
        self._active = True

        now = self._clock()
        delay = seconds_until_next_run(self._target_hour, now)
        self._arm(now + timedelta(seconds=delay))
        logger.info(
            "Compliance scheduler started",
            target_hour_utc=self._target_hour,
            next_run_at=self._next_run_at.isoformat() if self._next_run_at else None,
            hours_until=round(delay / 3600, 1),
        )

    def stop(self) -> None:
        """Cancel any pending run. Safe to call repeatedly."""
        if self._active:
            try:
                self._scheduler.remove_job(JOB_ID)
            except JobLookupError:
                logger.debug("No pending compliance sync to cancel")
        self._active = False
        self._next_run_at = None

        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Compliance scheduler stopped")

    def _arm(self, run_at: datetime) -> None:
        self._scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=run_at, timezone="UTC"),
            id=JOB_ID,
            replace_existing=True,
            misfire_grace_time=None,
        )
        self._next_run_at = run_at

    async def _fire(self) -> None:
        self._next_run_at = None
        logger.info("Scheduled compliance sync firing")
        try:
            await self._job()
        except Exception:
            logger.exception("Scheduled compliance sync failed")

        if self._active:
            self._arm(self._clock() + timedelta(hours=RESCHEDULE_INTERVAL_HOURS))
            logger.info("Next compliance sync armed", next_run_at=self._next_run_at)
