"""
Feed parsing and threat intelligence extraction.

- parser: RSS/Atom XML -> ParsedFeed
- rules: ordered keyword rules for severity, categories and threat type
- extraction: RawEntry -> ThreatIntelItem
"""

from cydex_intel.feeds.extraction import extract_feed, extract_item
from cydex_intel.feeds.parser import parse_feed

__all__ = [
    "extract_feed",
    "extract_item",
    "parse_feed",
]
