"""Background scheduling for the compliance sync."""

from regwatch.agent.scheduler import DailySyncScheduler, next_run_at, seconds_until_next_run

__all__ = ["DailySyncScheduler", "next_run_at", "seconds_until_next_run"]
