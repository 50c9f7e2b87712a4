"""Notification sinks for paging compliance alerts."""

from regwatch.notifications.dispatcher import notify_operator
from regwatch.notifications.telegram import send_telegram

__all__ = ["notify_operator", "send_telegram"]
