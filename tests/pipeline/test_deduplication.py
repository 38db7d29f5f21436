"""Tests for cross-feed item deduplication."""

from cydex_intel.core.models import ThreatIntelItem
from cydex_intel.pipeline.deduplication import deduplicate_items


def _item(item_id: str, title: str = "Post", feed_id: str = "feed") -> ThreatIntelItem:
    return ThreatIntelItem(
        id=item_id,
        feed_id=feed_id,
        title=title,
        description="",
        url="https://feeds.test/post",
        published_at="2024-05-14T14:30:00Z",
        severity="medium",
        categories=(),
        threat_type="general",
        indicators=(),
        source="Feed",
        processed_at="2024-05-14T15:00:00Z",
    )


class TestDeduplicateItems:
    """Test deduplicate_items."""

    def test_keeps_first_occurrence(self):
        items = [_item("a-1", "first"), _item("b-1"), _item("a-1", "repeat")]
        result = deduplicate_items(items)

        assert [i.id for i in result] == ["a-1", "b-1"]
        assert result[0].title == "first"

    def test_no_duplicates(self):
        items = [_item("a-1"), _item("a-2")]
        assert deduplicate_items(items) == items

    def test_empty(self):
        assert deduplicate_items([]) == []

    def test_accepts_generators(self):
        result = deduplicate_items(_item(f"x-{n % 2}") for n in range(5))
        assert [i.id for i in result] == ["x-0", "x-1"]
