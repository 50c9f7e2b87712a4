"""RSS/Atom feed retrieval and best-effort parsing.

Government feeds are loosely structured: titles and descriptions may arrive
as plain text, CDATA sections or entity-escaped HTML, and documents are
sometimes truncated. Parsing is delegated to feedparser, which extracts
fields by element name and tolerates malformed markup. Parsing never raises;
an unusable document yields an empty list so a single broken feed cannot
abort a sync run.
"""

import calendar
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx

from regwatch.core.exceptions import FeedFetchError
from regwatch.core.logging import get_logger
from regwatch.processing.classifier import strip_html
from regwatch.processing.models import FeedItem

logger = get_logger(__name__)


def _parse_feed_timestamp(time_struct: Any) -> datetime | None:
    """Convert feedparser's UTC struct_time into an aware datetime."""
    if time_struct is None or not hasattr(time_struct, "tm_year"):
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(time_struct), tz=timezone.utc)
    except (ValueError, OverflowError, TypeError):
        return None


def _entry_text(entry: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, list) and value:
            value = value[0].get("value", "")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _entry_to_item(entry: dict[str, Any]) -> FeedItem | None:
    title = strip_html(_entry_text(entry, "title"))
    if not title:
        return None
    return FeedItem(
        title=title,
        description=strip_html(_entry_text(entry, "summary", "description", "content")),
        link=_entry_text(entry, "link", "id"),
        published_at=_parse_feed_timestamp(
            entry.get("published_parsed") or entry.get("updated_parsed")
        ),
    )


def parse_feed(text: str) -> list[FeedItem]:
    """Extract (title, description, link, published_at) records from feed text.

    Args:
        text: Raw feed document, possibly malformed

    Returns:
        Items in document order; empty if nothing usable could be extracted
    """
    if not text or not text.strip():
        return []

    try:
        feed = feedparser.parse(text)
    except Exception as e:
        logger.warning("Feed parse error", error=str(e))
        return []

    entries = feed.get("entries") or []
    if feed.get("bozo") and not entries:
        logger.debug("Feed document unusable", error=str(feed.get("bozo_exception", "")))
        return []

    items: list[FeedItem] = []
    for entry in entries:
        try:
            item = _entry_to_item(entry)
        except Exception as e:
            logger.debug("Feed entry skipped", error=str(e))
            continue
        if item is not None:
            items.append(item)
    return items


async def fetch_feed(client: httpx.AsyncClient, url: str) -> list[FeedItem]:
    """Fetch and parse one feed.

    Raises:
        FeedFetchError: The feed could not be retrieved. Unparseable content
            is not an error and returns an empty list.
    """
    log = logger.bind(url=url)
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        log.warning("Feed fetch failed", status_code=e.response.status_code)
        raise FeedFetchError(url, f"HTTP {e.response.status_code}") from e
    except httpx.RequestError as e:
        log.warning("Feed request error", error=str(e))
        raise FeedFetchError(url, str(e) or type(e).__name__) from e

    items = parse_feed(response.text)
    log.debug("Feed fetched", count=len(items))
    return items
