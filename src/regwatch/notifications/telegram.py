"""Telegram notification sink.

Pages the operator's chat through the Bot API. Long alert bodies are split
at line boundaries to stay under Telegram's message limit.
"""

from __future__ import annotations

import json

import httpx

from regwatch.config import get_settings
from regwatch.core.constants import TELEGRAM_MAX_MESSAGE_LENGTH
from regwatch.core.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_TIMEOUT = 10.0

# Longest entity _escape_html produces (&quot;)
HTML_ENTITY_MAX_LENGTH = 6


def _escape_html(text: str) -> str:
    """Escape HTML special characters for Telegram."""
    return (
        text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")
    )


def _split_message(message: str, max_length: int = TELEGRAM_MAX_MESSAGE_LENGTH) -> list[str]:
    """Split a long message into chunks, preferring paragraph then line breaks."""
    if len(message) <= max_length:
        return [message]

    chunks: list[str] = []
    remaining = message
    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        window = remaining[:max_length]
        split_pos = window.rfind("\n\n")
        if split_pos <= max_length // 2:
            split_pos = window.rfind("\n")
        if split_pos <= max_length // 2:
            split_pos = max_length
            # A hard cut must not land inside an escaped entity such as &amp;
            amp = window.rfind("&", max_length - HTML_ENTITY_MAX_LENGTH)
            if amp > 0 and ";" not in window[amp:]:
                split_pos = amp

        chunks.append(remaining[:split_pos].rstrip())
        remaining = remaining[split_pos:].lstrip("\n")

    return chunks


def format_alert_message(title: str, body: str) -> str:
    """Render a (title, body) notification as Telegram HTML."""
    return f"<b>{_escape_html(title)}</b>\n\n{_escape_html(body)}"


async def send_telegram(message: str, parse_mode: str = "HTML") -> bool:
    """Send a message to the configured Telegram chat.

    Args:
        message: The message text to send (supports HTML formatting)
        parse_mode: Parse mode for message formatting (HTML or Markdown)

    Returns:
        True if message was sent successfully, False otherwise
    """
    settings = get_settings()

    if not settings.telegram_bot_token:
        logger.warning("Telegram bot token not configured, skipping notification")
        return False

    if not settings.telegram_chat_id:
        logger.warning("Telegram chat ID not configured, skipping notification")
        return False

    url = (
        f"https://api.telegram.org/bot{settings.telegram_bot_token.get_secret_value()}/sendMessage"
    )
    payload = {
        "chat_id": settings.telegram_chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        async with httpx.AsyncClient(timeout=TELEGRAM_TIMEOUT) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()

            result = response.json()
            if result.get("ok"):
                logger.debug("Telegram message sent successfully")
                return True
            logger.warning("Telegram API returned error", error=result.get("description"))
            return False

    except httpx.HTTPError as e:
        logger.error("Failed to send Telegram message", error=str(e))
        return False
    except (json.JSONDecodeError, KeyError) as e:
        logger.error("Failed to parse Telegram API response", error=str(e))
        return False


async def send_telegram_alert(title: str, body: str) -> bool:
    """Send an alert, splitting into several messages if needed.

    Returns:
        True only if every chunk was delivered
    """
    chunks = _split_message(format_alert_message(title, body))

    all_sent = True
    for i, chunk in enumerate(chunks):
        if not await send_telegram(chunk):
            logger.warning("Failed to send alert chunk", chunk_index=i, total_chunks=len(chunks))
            all_sent = False
    return all_sent
