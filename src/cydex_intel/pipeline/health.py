"""
Feed health and item summaries for dashboards and health monitors.
"""

from collections import Counter
from typing import Any, Dict, Iterable, Sequence

from cydex_intel.core.models import SEVERITY_LEVELS, FeedStatus, ThreatIntelItem
from cydex_intel.feeds.extraction import classify_indicator


def summarize_feed_health(statuses: Sequence[FeedStatus]) -> Dict[str, Any]:
    """Counts of active/error feeds plus the rounded percentage of active feeds."""
    total = len(statuses)
    active = sum(1 for s in statuses if s.is_active)
    return {
        "totalFeeds": total,
        "activeFeeds": active,
        "errorFeeds": total - active,
        "healthPercentage": round(active * 100 / total) if total else 0,
        "feedStatus": [s.to_dict() for s in statuses],
    }


def summarize_items(items: Iterable[ThreatIntelItem]) -> Dict[str, Dict[str, int]]:
    """Item counts by severity and threat type, indicator counts by kind."""
    by_severity = {level: 0 for level in SEVERITY_LEVELS}
    by_threat_type: Counter = Counter()
    by_indicator_type: Counter = Counter()

    for item in items:
        by_severity[item.severity] = by_severity.get(item.severity, 0) + 1
        by_threat_type[item.threat_type] += 1
        for indicator in item.indicators:
            by_indicator_type[classify_indicator(indicator)] += 1

    return {
        "bySeverity": by_severity,
        "byThreatType": dict(by_threat_type),
        "byIndicatorType": dict(by_indicator_type),
    }
