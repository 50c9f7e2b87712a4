"""Compliance source adapters."""

from regwatch.sources.base import ComplianceSource
from regwatch.sources.feeds import CMSFeedSource, SAMHSAFeedSource
from regwatch.sources.paid import LexisNexisSource, WestlawSource
from regwatch.sources.registry import CANONICAL_CODES, CodeRegistrySource

__all__ = [
    "CANONICAL_CODES",
    "CMSFeedSource",
    "CodeRegistrySource",
    "ComplianceSource",
    "LexisNexisSource",
    "SAMHSAFeedSource",
    "WestlawSource",
]
