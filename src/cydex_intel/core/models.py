"""Data models for feed configuration, parsed entries and extracted threat intelligence."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
import hashlib

SEVERITY_LEVELS: Tuple[str, ...] = ("low", "medium", "high", "critical")

FEED_STATUS_ACTIVE = "active"
FEED_STATUS_ERROR = "error"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class FeedConfig:
    feed_id: str
    url: str
    default_severity: str = "medium"   # one of SEVERITY_LEVELS

    # Catalog extras
    name: str = ""
    timeout_seconds: Optional[float] = None   # None = runner default

    def __post_init__(self) -> None:
        if self.default_severity not in SEVERITY_LEVELS:
            raise ValueError(
                f"Invalid default_severity {self.default_severity!r} for feed {self.feed_id!r}; "
                f"expected one of {', '.join(SEVERITY_LEVELS)}"
            )


@dataclass(frozen=True)
class RawEntry:
    title: str
    description: str
    link: str
    published_at_raw: str
    guid: Optional[str] = None
    author: Optional[str] = None
    categories: Tuple[str, ...] = ()
    rich_content: Optional[str] = None   # content:encoded / Atom content


@dataclass(frozen=True)
class ParsedFeed:
    feed_id: str
    title: str
    description: str
    link: str
    fetched_at: str
    last_build_date: Optional[str] = None
    entries: Tuple[RawEntry, ...] = ()


@dataclass(frozen=True)
class ThreatIntelItem:
    id: str
    feed_id: str
    title: str
    description: str                 # markup stripped
    url: str
    published_at: str                # ISO-8601 UTC
    severity: str                    # one of SEVERITY_LEVELS
    categories: Tuple[str, ...]
    threat_type: str
    indicators: Tuple[str, ...]
    source: str                      # feed title
    processed_at: str
    raw_content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render with the camelCase field names downstream consumers key off."""
        return {
            "id": self.id,
            "feedId": self.feed_id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "publishedAt": self.published_at,
            "severity": self.severity,
            "categories": list(self.categories),
            "threatType": self.threat_type,
            "indicators": list(self.indicators),
            "source": self.source,
            "rawContent": self.raw_content,
            "processedAt": self.processed_at,
        }


@dataclass(frozen=True)
class FeedStatus:
    feed_id: str
    status: str                      # "active" | "error"
    last_update: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == FEED_STATUS_ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feedId": self.feed_id,
            "status": self.status,
            "lastUpdate": self.last_update,
            "error": self.error,
        }


@dataclass(frozen=True)
class RunResult:
    items: Tuple[ThreatIntelItem, ...] = ()
    statuses: Tuple[FeedStatus, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "statuses": [status.to_dict() for status in self.statuses],
        }


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def make_item_id(identifier: str, feed_id: str) -> str:
    """
    Stable item id: feed id plus a base36 rendering of the first 64 bits of
    SHA-256(identifier + feed_id).
    """
    digest = hashlib.sha256((identifier + feed_id).encode("utf-8")).digest()
    return f"{feed_id}-{_to_base36(int.from_bytes(digest[:8], 'big'))}"
