"""
Cross-feed deduplication of threat intelligence items.

Item ids are a pure function of the entry identifier and feed id, so
repeated runs over the same feeds produce the same ids and duplicates can
be dropped without any stored state.
"""

import logging
from typing import Iterable, List, Set

from cydex_intel.core.models import ThreatIntelItem

logger = logging.getLogger(__name__)


def deduplicate_items(items: Iterable[ThreatIntelItem]) -> List[ThreatIntelItem]:
    """
    Keep the first item seen for each id, preserving order.

    Args:
        items: Items in the order they were produced

    Returns:
        Items with later repeats of an id removed
    """
    seen: Set[str] = set()
    unique: List[ThreatIntelItem] = []
    duplicates = 0
    for item in items:
        if item.id in seen:
            duplicates += 1
            continue
        seen.add(item.id)
        unique.append(item)

    if duplicates:
        logger.info(f"Dropped {duplicates} duplicate items ({len(unique)} unique)")
    return unique
