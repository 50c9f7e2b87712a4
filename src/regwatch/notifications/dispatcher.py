"""Notification dispatcher: routes operator pages to the configured channel."""

from __future__ import annotations

from regwatch.config import get_settings
from regwatch.core.logging import get_logger

logger = get_logger(__name__)


async def notify_operator(title: str, body: str) -> bool:
    """Deliver a (title, body) notification to the human operator.

    Returns:
        True if delivered; False if the channel is unconfigured or delivery failed
    """
    channel = get_settings().notification_channel
    logger.debug("Paging operator", channel=channel, title=title)

    if channel == "discord":
        from regwatch.notifications.discord import send_discord_alert

        return await send_discord_alert(title, body)

    from regwatch.notifications.telegram import send_telegram_alert

    return await send_telegram_alert(title, body)
