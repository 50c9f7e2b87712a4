"""Feed ingestion."""

from regwatch.ingestion.feeds import fetch_feed, parse_feed

__all__ = ["fetch_feed", "parse_feed"]
