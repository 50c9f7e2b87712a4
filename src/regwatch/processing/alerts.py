"""Alert creation and operator fan-out."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from regwatch.core.logging import get_logger
from regwatch.notifications import notify_operator
from regwatch.processing.models import Alert, Severity

if TYPE_CHECKING:
    from regwatch.storage.database import Database

logger = get_logger(__name__)

NotificationSink = Callable[[str, str], Awaitable[bool]]


def format_notification(alert: Alert) -> tuple[str, str]:
    """Build the (title, body) pair sent to the operator for an alert."""
    title = f"[Compliance {alert.severity.value.upper()}] {alert.title}"
    body = f"Source: {alert.source.value}\nCategory: {alert.category}\n\n{alert.description}"
    if alert.source_url:
        body += f"\n\nSource: {alert.source_url}"
    return title, body


class AlertService:
    """Persists alerts and pages the operator for anything above info.

    Paging is best-effort: a failing sink is logged and never fails the
    alert write or the sync run that raised it.
    """

    def __init__(self, db: Database, sink: NotificationSink = notify_operator) -> None:
        self._db = db
        self._sink = sink

    async def create_alert(self, alert: Alert) -> int:
        alert_id = await self._db.insert_alert(alert)

        if alert.severity != Severity.info:
            await self._page(alert, alert_id)

        return alert_id

    async def _page(self, alert: Alert, alert_id: int) -> None:
        title, body = format_notification(alert)
        try:
            delivered = await self._sink(title, body)
        except Exception:
            logger.exception("Notification sink raised", alert_id=alert_id)
            return
        if not delivered:
            logger.warning(
                "Alert notification not delivered",
                alert_id=alert_id,
                severity=alert.severity.value,
            )
