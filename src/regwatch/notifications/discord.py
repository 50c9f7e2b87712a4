"""Discord webhook notification sink.

Alternative to Telegram for paging compliance alerts as a single embed.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from regwatch.config import get_settings
from regwatch.core.constants import DISCORD_MAX_DESCRIPTION_LENGTH
from regwatch.core.logging import get_logger

logger = get_logger(__name__)

DISCORD_TIMEOUT = 10.0

COLOR_WARNING = 0xFEE75C  # Yellow
COLOR_CRITICAL = 0xED4245  # Red


def format_alert_embed(title: str, body: str) -> dict[str, Any]:
    color = COLOR_CRITICAL if "CRITICAL" in title.upper() else COLOR_WARNING
    return {
        "title": title[:256],
        "description": body[:DISCORD_MAX_DESCRIPTION_LENGTH],
        "color": color,
    }


async def send_discord(embeds: list[dict[str, Any]]) -> bool:
    """Send embed(s) to the configured Discord webhook.

    Returns:
        True if sent successfully, False otherwise
    """
    settings = get_settings()
    if not settings.discord_webhook_url:
        logger.warning("Discord webhook URL not configured, skipping notification")
        return False

    webhook_url = settings.discord_webhook_url.get_secret_value()
    payload: dict[str, Any] = {"username": "Regwatch", "embeds": embeds[:10]}

    try:
        async with httpx.AsyncClient(timeout=DISCORD_TIMEOUT) as client:
            response = await client.post(webhook_url, json=payload)
            if response.status_code == 204:
                logger.debug("Discord webhook sent successfully")
                return True

            if response.status_code == 429:
                retry_after = 1.0
                try:
                    retry_after = float(response.json().get("retry_after", 1.0))
                except ValueError:
                    logger.debug("Discord 429 without JSON body, using default retry delay")
                logger.warning("Discord rate limited, retrying after delay", retry_after=retry_after)
                await asyncio.sleep(retry_after)
                response = await client.post(webhook_url, json=payload)
                if response.status_code == 204:
                    return True

            logger.warning(
                "Discord webhook failed",
                status=response.status_code,
                body=response.text[:200],
            )
            return False

    except httpx.HTTPError as e:
        logger.error("Discord webhook request failed", error=str(e), error_type=type(e).__name__)
        return False


async def send_discord_alert(title: str, body: str) -> bool:
    return await send_discord([format_alert_embed(title, body)])
