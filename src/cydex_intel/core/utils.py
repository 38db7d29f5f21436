import datetime
import logging
from typing import Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# US zone names still common in RSS pubDate, as UTC offsets in seconds
_TZ_ABBREVIATIONS = {
    "EST": -5 * 3600,
    "EDT": -4 * 3600,
    "CST": -6 * 3600,
    "CDT": -5 * 3600,
    "MST": -7 * 3600,
    "MDT": -6 * 3600,
    "PST": -8 * 3600,
    "PDT": -7 * 3600,
}

# Feed date formats, most common first
_FEED_DATE_FORMATS = [
    "%a, %d %b %Y %H:%M:%S %z",   # RFC 822: Wed, 19 Nov 2025 16:23:06 +0000
    "%a, %d %b %Y %H:%M %z",      # RFC 822 without seconds
    "%d %b %Y %H:%M:%S %z",       # RFC 822 without weekday
    "%Y-%m-%dT%H:%M:%SZ",         # ISO 8601 UTC
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%S%z",        # ISO 8601 with offset
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
]


def now_utc_iso() -> str:
    """Return current UTC time as ISO8601 string with 'Z'."""
    return to_utc_iso(datetime.datetime.now(datetime.timezone.utc))


def to_utc_iso(dt: datetime.datetime) -> str:
    """Render a datetime as second-precision UTC ISO8601 with 'Z'. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return (
        dt.astimezone(datetime.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def parse_feed_date(date_str: Optional[str]) -> Optional[datetime.datetime]:
    """
    Parse an RSS/Atom date string to a timezone-aware datetime.

    Supports RFC 822/1123 (RSS pubDate) and ISO 8601 (Atom published/updated).
    Returns None if the string matches no known format.
    """
    if not date_str:
        return None

    s = date_str.replace("\xa0", " ").strip()
    # "UT" appears in some feeds; dateutil only knows GMT/UTC
    if s.endswith(" UT"):
        s = s[:-3] + " GMT"

    for fmt in _FEED_DATE_FORMATS:
        try:
            dt = datetime.datetime.strptime(s, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        return dt

    # Named zones (GMT, EST, ...), missing weekday or seconds, other ISO variants
    try:
        dt = date_parser.parse(s, tzinfos=_TZ_ABBREVIATIONS)
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse feed date: {date_str}")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt
