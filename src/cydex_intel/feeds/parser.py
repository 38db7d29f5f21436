"""
Tolerant RSS/Atom parsing.

Turns raw feed XML into a ParsedFeed: channel metadata plus the ordered raw
entries. Supports RSS 2.0 (<channel><item>), RSS 1.0/RDF (items beside the
channel) and Atom (<feed><entry>). Parsing goes through BeautifulSoup's
lxml XML builder, which recovers from the usual feed defects (stray "&",
HTML entities, unclosed tags) instead of rejecting the document.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup
from bs4.element import Tag
from lxml import etree

from cydex_intel.core.errors import MalformedFeed
from cydex_intel.core.models import ParsedFeed, RawEntry
from cydex_intel.core.utils import now_utc_iso

logger = logging.getLogger(__name__)

TagNames = Union[str, Sequence[str]]

DEFAULT_FEED_TITLE = "Unknown Feed"
DEFAULT_ENTRY_TITLE = "Untitled"

# HTML entities feeds use without declaring; lxml's recover mode drops them
_UNDECLARED_ENTITIES = {"&nbsp;": " "}


def _as_list(names: TagNames) -> List[str]:
    return [names] if isinstance(names, str) else list(names)


def qualified_name(element: Tag) -> str:
    """Tag name with its namespace prefix, e.g. "media:title"."""
    return f"{element.prefix}:{element.name}" if element.prefix else element.name


def find_all(element: Tag, names: TagNames, *, recursive: bool = False) -> List[Tag]:
    """
    All elements matching any of names, in document order.

    bs4 matches a bare "title" against <media:title> too; here an unprefixed
    name only matches unprefixed elements, and "dc:date" style names match
    that exact prefix.
    """
    wanted = _as_list(names)
    return [
        tag for tag in element.find_all(wanted, recursive=recursive)
        if qualified_name(tag) in wanted
    ]


def find_first(element: Tag, names: TagNames, *, recursive: bool = False) -> Optional[Tag]:
    """First element matching names, trying names in order."""
    for name in _as_list(names):
        found = find_all(element, name, recursive=recursive)
        if found:
            return found[0]
    return None


def text_of(element: Optional[Tag]) -> str:
    """Stripped text content of element, "" when missing."""
    if element is None:
        return ""
    return element.get_text().strip()


def first_text(element: Tag, names: TagNames, default: Optional[str] = "") -> Optional[str]:
    """Text of the first non-empty element matching names, else default."""
    for name in _as_list(names):
        for candidate in find_all(element, name):
            value = text_of(candidate)
            if value:
                return value
    return default


def _atom_link(entry: Tag) -> str:
    """Preferred Atom link: rel="alternate" (or no rel) href, else first href."""
    links = find_all(entry, ["link", "atom:link"])
    for link in links:
        if link.get("rel", "alternate") == "alternate" and link.get("href"):
            return link["href"].strip()
    for link in links:
        if link.get("href"):
            return link["href"].strip()
    # RSS-style text link inside an Atom-ish document
    return first_text(entry, "link")


def _categories(entry: Tag) -> tuple:
    categories = []
    for cat in find_all(entry, "category"):
        # Atom carries the label in term=, RSS in the element text
        value = text_of(cat) or (cat.get("term") or "").strip()
        if value:
            categories.append(value)
    for subject in find_all(entry, "dc:subject"):
        value = text_of(subject)
        if value:
            categories.append(value)
    return tuple(categories)


def _rss_entry(item: Tag) -> RawEntry:
    rich = first_text(item, "content:encoded", default=None)
    link = first_text(item, "link")
    if not link:
        # <atom:link href=...> inside RSS items
        link = _atom_link(item)
    return RawEntry(
        title=first_text(item, "title") or DEFAULT_ENTRY_TITLE,
        description=first_text(item, "description"),
        link=link,
        published_at_raw=first_text(item, ["pubDate", "dc:date"]) or now_utc_iso(),
        guid=first_text(item, "guid", default=None),
        author=first_text(item, ["author", "dc:creator"], default=None),
        categories=_categories(item),
        rich_content=rich,
    )


def _atom_entry(entry: Tag) -> RawEntry:
    author = None
    author_el = find_first(entry, "author")
    if author_el is not None:
        author = first_text(author_el, "name", default=None) or text_of(author_el) or None
    return RawEntry(
        title=first_text(entry, "title") or DEFAULT_ENTRY_TITLE,
        description=first_text(entry, ["summary", "content"]),
        link=_atom_link(entry),
        published_at_raw=first_text(entry, ["published", "updated"]) or now_utc_iso(),
        guid=first_text(entry, "id", default=None),
        author=author,
        categories=_categories(entry),
        rich_content=first_text(entry, "content", default=None),
    )


def _replace_undeclared_entities(raw_text: str) -> str:
    for entity, replacement in _UNDECLARED_ENTITIES.items():
        raw_text = raw_text.replace(entity, replacement)
    return raw_text


def parse_feed(raw_text: str, feed_id: str) -> ParsedFeed:
    """
    Parse raw feed text into a ParsedFeed.

    Missing optional fields fall back to defaults rather than failing the
    parse. Raises MalformedFeed if the document has no <channel> (RSS) or
    <feed> (Atom) container.
    """
    try:
        soup = BeautifulSoup(_replace_undeclared_entities(raw_text or ""), "xml")
    except (ParserRejectedMarkup, etree.LxmlError) as e:
        raise MalformedFeed(f"Invalid feed format: {e}", feed_id=feed_id) from e

    channel = find_first(soup, "channel", recursive=True)
    atom_feed = find_first(soup, "feed", recursive=True) if channel is None else None
    if channel is None and atom_feed is None:
        raise MalformedFeed(
            "Invalid feed format: no channel or feed element found",
            feed_id=feed_id,
        )

    fetched_at = now_utc_iso()

    if channel is not None:
        entries = [_rss_entry(item) for item in find_all(channel, "item")]
        if not entries and channel.parent is not None:
            # RSS 1.0 / RDF puts items next to the channel
            entries = [_rss_entry(item) for item in find_all(channel.parent, "item")]
        parsed = ParsedFeed(
            feed_id=feed_id,
            title=first_text(channel, "title") or DEFAULT_FEED_TITLE,
            description=first_text(channel, "description"),
            link=first_text(channel, "link"),
            last_build_date=first_text(channel, ["lastBuildDate", "pubDate", "dc:date"], default=None),
            entries=tuple(entries),
            fetched_at=fetched_at,
        )
    else:
        entries = [_atom_entry(entry) for entry in find_all(atom_feed, "entry")]
        parsed = ParsedFeed(
            feed_id=feed_id,
            title=first_text(atom_feed, "title") or DEFAULT_FEED_TITLE,
            description=first_text(atom_feed, "subtitle"),
            link=_atom_link(atom_feed),
            last_build_date=first_text(atom_feed, "updated", default=None),
            entries=tuple(entries),
            fetched_at=fetched_at,
        )

    logger.debug(f"{feed_id}: parsed {len(parsed.entries)} entries from '{parsed.title}'")
    return parsed
