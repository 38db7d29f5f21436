"""
Threat intelligence extraction for parsed feed entries.

Converts each RawEntry into a ThreatIntelItem with a stable id, cleaned
description, normalized publish date, severity, categories, threat type and
extracted indicators of compromise. Every helper here is total: missing or
odd input yields a fallback value, never an exception, so one bad entry
cannot take down the rest of its feed.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from cydex_intel.core import config
from cydex_intel.core.models import (
    FeedConfig,
    ParsedFeed,
    RawEntry,
    ThreatIntelItem,
    make_item_id,
)
from cydex_intel.core.utils import now_utc_iso, parse_feed_date, to_utc_iso
from cydex_intel.feeds.rules import (
    CATEGORY_RULES,
    DEFAULT_THREAT_TYPE,
    SEVERITY_RULES,
    THREAT_TYPE_RULES,
    all_matches,
    first_match,
)

logger = logging.getLogger(__name__)

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
IPV4_PATTERN = re.compile(rf"\b(?:{_OCTET}\.){{3}}{_OCTET}\b")
DOMAIN_PATTERN = re.compile(
    r"\b(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}\b"
)
SHA256_PATTERN = re.compile(r"\b[a-fA-F0-9]{64}\b")
CVE_PATTERN = re.compile(r"CVE-\d{4}-\d{4,}")

_TAG_PATTERN = re.compile(r"<[^>]*>")

# Decoded in this order; &amp; after &lt;/&gt; so "&amp;lt;" stays "&lt;"
_HTML_ENTITIES = [
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
]

_INDICATOR_TYPE_PATTERNS = [
    ("ip", re.compile(rf"^(?:{_OCTET}\.){{3}}{_OCTET}$")),
    ("cve", re.compile(r"^CVE-\d{4}-\d{4,}$")),
    ("hash", re.compile(r"^[a-fA-F0-9]{64}$")),
    ("email", re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")),
    ("url", re.compile(r"^https?://")),
    ("domain", re.compile(r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$")),
]


def _unique(values: Iterable[str]) -> List[str]:
    """Drop duplicates, keeping first occurrences in order."""
    return list(dict.fromkeys(values))


def _classification_text(entry: RawEntry) -> str:
    return f"{entry.title} {entry.description}".lower()


def item_identifier(entry: RawEntry) -> str:
    return entry.guid or entry.link or entry.title


def clean_description(description: Optional[str]) -> str:
    """Strip markup, decode the five basic HTML entities, trim."""
    text = _TAG_PATTERN.sub("", description or "")
    for entity, char in _HTML_ENTITIES:
        text = text.replace(entity, char)
    return text.strip()


def normalize_date(raw: Optional[str]) -> str:
    """ISO-8601 UTC rendering of raw, or the current time if it does not parse."""
    parsed = parse_feed_date(raw)
    if parsed is None:
        return now_utc_iso()
    return to_utc_iso(parsed)


def determine_severity(entry: RawEntry, default_severity: str) -> str:
    return first_match(SEVERITY_RULES, _classification_text(entry), default_severity)


def extract_categories(entry: RawEntry) -> List[str]:
    """Declared categories followed by inferred ones, duplicates removed."""
    inferred = all_matches(CATEGORY_RULES, _classification_text(entry))
    return _unique(list(entry.categories) + inferred)


def determine_threat_type(entry: RawEntry) -> str:
    return first_match(THREAT_TYPE_RULES, _classification_text(entry), DEFAULT_THREAT_TYPE)


def _is_placeholder_domain(domain: str) -> bool:
    domain = domain.lower()
    return any(
        domain == placeholder or domain.endswith("." + placeholder)
        for placeholder in config.PLACEHOLDER_DOMAINS
    )


def extract_indicator_groups(text: str) -> Dict[str, List[str]]:
    """
    IOCs in text grouped by kind, each group deduplicated.

    Keys are "ip", "domain", "hash" and "cve".
    """
    text = text or ""
    return {
        "ip": _unique(IPV4_PATTERN.findall(text)),
        "domain": _unique(d for d in DOMAIN_PATTERN.findall(text) if not _is_placeholder_domain(d)),
        "hash": _unique(SHA256_PATTERN.findall(text)),
        "cve": _unique(CVE_PATTERN.findall(text)),
    }


def extract_indicators(entry: RawEntry) -> List[str]:
    """IPs, domains, hashes and CVEs from title, description and rich content."""
    text = f"{entry.title} {entry.description} {entry.rich_content or ''}"
    groups = extract_indicator_groups(text)
    return _unique(groups["ip"] + groups["domain"] + groups["hash"] + groups["cve"])


def classify_indicator(value: str) -> str:
    """Indicator kind: ip, cve, hash, email, url, domain or unknown."""
    for kind, pattern in _INDICATOR_TYPE_PATTERNS:
        if pattern.search(value):
            return kind
    return "unknown"


def extract_item(
    entry: RawEntry,
    feed_id: str,
    feed_title: str,
    default_severity: str,
) -> ThreatIntelItem:
    """
    Build a ThreatIntelItem from one feed entry.

    Deterministic for a given input apart from processed_at (and
    published_at when the entry's date cannot be parsed).
    """
    return ThreatIntelItem(
        id=make_item_id(item_identifier(entry), feed_id),
        feed_id=feed_id,
        title=entry.title,
        description=clean_description(entry.description),
        url=entry.link,
        published_at=normalize_date(entry.published_at_raw),
        severity=determine_severity(entry, default_severity),
        categories=tuple(extract_categories(entry)),
        threat_type=determine_threat_type(entry),
        indicators=tuple(extract_indicators(entry)),
        source=feed_title,
        raw_content=entry.rich_content,
        processed_at=now_utc_iso(),
    )


def extract_feed(parsed: ParsedFeed, feed: FeedConfig) -> List[ThreatIntelItem]:
    """Extract every entry of parsed, preserving entry order."""
    items = [
        extract_item(entry, parsed.feed_id, parsed.title, feed.default_severity)
        for entry in parsed.entries
    ]
    logger.debug(f"{parsed.feed_id}: extracted {len(items)} items")
    return items
