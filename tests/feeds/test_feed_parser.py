"""Tests for RSS/Atom feed parsing."""

import pytest

from cydex_intel.core.errors import FeedIngestionError, MalformedFeed
from cydex_intel.feeds.parser import parse_feed

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:atom="http://www.w3.org/2005/Atom"
     xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Krebs on Security</title>
    <atom:link href="https://krebsonsecurity.com/feed/" rel="self" type="application/rss+xml"/>
    <link>https://krebsonsecurity.com</link>
    <description>In-depth security news and investigation</description>
    <lastBuildDate>Tue, 14 May 2024 15:00:00 +0000</lastBuildDate>
    <image>
      <title>Logo title</title>
      <url>https://krebsonsecurity.com/logo.png</url>
    </image>
    <item>
      <title><![CDATA[Ransomware gang hits regional hospital]]></title>
      <link>https://krebsonsecurity.com/2024/05/ransomware-hospital/</link>
      <pubDate>Tue, 14 May 2024 14:30:00 +0000</pubDate>
      <guid isPermaLink="false">https://krebsonsecurity.com/?p=1001</guid>
      <dc:creator>Brian Krebs</dc:creator>
      <category>Ransomware</category>
      <category>Ransomware</category>
      <category>Healthcare</category>
      <description><![CDATA[<p>Attackers used <b>198.51.100.7</b> for C2.</p>]]></description>
      <content:encoded><![CDATA[<p>Full write-up mentioning evil-updates.net</p>]]></content:encoded>
    </item>
    <item>
      <title>Second post</title>
      <link>https://krebsonsecurity.com/2024/05/second/</link>
      <pubDate>Mon, 13 May 2024 09:00:00 +0000</pubDate>
      <description>Plain &amp; simple</description>
    </item>
  </channel>
</rss>
"""

SPARSE_RSS = """<?xml version="1.0"?>
<rss version="2.0">
  <channel>
    <item>
      <description>Only a description here</description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Google Security Blog</title>
  <subtitle>The latest news and insights from Google on security</subtitle>
  <link href="https://security.googleblog.com/atom.xml" rel="self"/>
  <link href="https://security.googleblog.com/" rel="alternate"/>
  <updated>2024-05-01T10:00:00Z</updated>
  <entry>
    <id>tag:blogger.com,1999:blog-1.post-42</id>
    <title>Phishing kits target passkeys</title>
    <link rel="replies" href="https://security.googleblog.com/post-42#comments"/>
    <link rel="alternate" href="https://security.googleblog.com/post-42"/>
    <published>2024-05-01T09:00:00Z</published>
    <updated>2024-05-01T09:30:00Z</updated>
    <author><name>Security Team</name></author>
    <category term="phishing"/>
    <category term="passkeys"/>
    <summary>Short summary</summary>
    <content type="html">&lt;p&gt;Full article body&lt;/p&gt;</content>
  </entry>
  <entry>
    <id>tag:blogger.com,1999:blog-1.post-43</id>
    <title>Updated only</title>
    <link href="https://security.googleblog.com/post-43"/>
    <updated>2024-04-30T08:00:00Z</updated>
    <content type="text">Body only</content>
  </entry>
</feed>
"""

RDF_FEED = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel rdf:about="https://rdf.feeds.test/">
    <title>RDF Advisories</title>
    <link>https://rdf.feeds.test/</link>
    <description>RSS 1.0 feed</description>
  </channel>
  <item rdf:about="https://rdf.feeds.test/1">
    <title>Advisory one</title>
    <link>https://rdf.feeds.test/1</link>
    <dc:date>2024-01-02T03:04:05Z</dc:date>
    <dc:subject>malware</dc:subject>
  </item>
  <item rdf:about="https://rdf.feeds.test/2">
    <title>Advisory two</title>
    <link>https://rdf.feeds.test/2</link>
  </item>
</rdf:RDF>
"""


class TestRSSParsing:
    """Test RSS 2.0 parsing."""

    def test_channel_metadata(self):
        parsed = parse_feed(RSS_FEED, "krebs")

        assert parsed.feed_id == "krebs"
        assert parsed.title == "Krebs on Security"
        assert parsed.link == "https://krebsonsecurity.com"
        assert parsed.description == "In-depth security news and investigation"
        assert parsed.last_build_date == "Tue, 14 May 2024 15:00:00 +0000"
        assert parsed.fetched_at.endswith("Z")

    def test_entries_in_document_order(self):
        parsed = parse_feed(RSS_FEED, "krebs")
        assert [e.title for e in parsed.entries] == [
            "Ransomware gang hits regional hospital",
            "Second post",
        ]

    def test_entry_fields(self):
        entry = parse_feed(RSS_FEED, "krebs").entries[0]

        assert entry.link == "https://krebsonsecurity.com/2024/05/ransomware-hospital/"
        assert entry.published_at_raw == "Tue, 14 May 2024 14:30:00 +0000"
        assert entry.guid == "https://krebsonsecurity.com/?p=1001"
        assert entry.author == "Brian Krebs"
        assert "198.51.100.7" in entry.description
        assert entry.description.startswith("<p>")

    def test_categories_keep_order_and_duplicates(self):
        entry = parse_feed(RSS_FEED, "krebs").entries[0]
        assert entry.categories == ("Ransomware", "Ransomware", "Healthcare")

    def test_rich_content_captured(self):
        entry = parse_feed(RSS_FEED, "krebs").entries[0]
        assert entry.rich_content is not None
        assert "evil-updates.net" in entry.rich_content

    def test_rich_content_absent(self):
        entry = parse_feed(RSS_FEED, "krebs").entries[1]
        assert entry.rich_content is None
        assert entry.categories == ()
        assert entry.guid is None

    def test_entities_in_text_are_decoded(self):
        entry = parse_feed(RSS_FEED, "krebs").entries[1]
        assert entry.description == "Plain & simple"


class TestMissingFields:
    """Test fallbacks for missing optional fields."""

    def test_entry_fallbacks(self):
        parsed = parse_feed(SPARSE_RSS, "sparse")
        assert len(parsed.entries) == 1

        entry = parsed.entries[0]
        assert entry.title == "Untitled"
        assert entry.link == ""
        assert entry.guid is None
        assert entry.author is None
        assert entry.description == "Only a description here"
        # Missing pubDate falls back to the current time
        assert entry.published_at_raw.endswith("Z")

    def test_channel_fallbacks(self):
        parsed = parse_feed(SPARSE_RSS, "sparse")
        assert parsed.title == "Unknown Feed"
        assert parsed.description == ""
        assert parsed.link == ""
        assert parsed.last_build_date is None

    def test_empty_channel(self):
        parsed = parse_feed("<rss><channel><title>Empty</title></channel></rss>", "empty")
        assert parsed.title == "Empty"
        assert parsed.entries == ()


class TestAtomParsing:
    """Test Atom feed parsing."""

    def test_feed_metadata(self):
        parsed = parse_feed(ATOM_FEED, "google")
        assert parsed.title == "Google Security Blog"
        assert parsed.description == "The latest news and insights from Google on security"
        assert parsed.link == "https://security.googleblog.com/"
        assert parsed.last_build_date == "2024-05-01T10:00:00Z"

    def test_entry_fields(self):
        entry = parse_feed(ATOM_FEED, "google").entries[0]
        assert entry.title == "Phishing kits target passkeys"
        assert entry.link == "https://security.googleblog.com/post-42"
        assert entry.guid == "tag:blogger.com,1999:blog-1.post-42"
        assert entry.published_at_raw == "2024-05-01T09:00:00Z"
        assert entry.author == "Security Team"
        assert entry.categories == ("phishing", "passkeys")
        assert entry.description == "Short summary"
        assert entry.rich_content == "<p>Full article body</p>"

    def test_entry_fallbacks(self):
        entry = parse_feed(ATOM_FEED, "google").entries[1]
        assert entry.link == "https://security.googleblog.com/post-43"
        assert entry.published_at_raw == "2024-04-30T08:00:00Z"
        assert entry.description == "Body only"
        assert entry.author is None


class TestRDFParsing:
    """Test RSS 1.0 (RDF) parsing."""

    def test_items_beside_channel(self):
        parsed = parse_feed(RDF_FEED, "rdf")
        assert parsed.title == "RDF Advisories"
        assert [e.title for e in parsed.entries] == ["Advisory one", "Advisory two"]

    def test_dublin_core_fields(self):
        entry = parse_feed(RDF_FEED, "rdf").entries[0]
        assert entry.published_at_raw == "2024-01-02T03:04:05Z"
        assert entry.categories == ("malware",)


class TestMalformedFeeds:
    """Test documents without a feed container."""

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "this is not xml at all",
            "<html><body><p>Service temporarily unavailable</p></body></html>",
            "<?xml version=\"1.0\"?><root><item><title>orphan</title></item></root>",
        ],
    )
    def test_raises_malformed_feed(self, raw):
        with pytest.raises(MalformedFeed):
            parse_feed(raw, "broken")

    def test_malformed_feed_carries_feed_id(self):
        with pytest.raises(FeedIngestionError) as exc_info:
            parse_feed("<html/>", "broken")
        assert exc_info.value.feed_id == "broken"
        assert "channel" in str(exc_info.value)


MRSS_FEED = """<?xml version="1.0"?>
<rss version="2.0"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>Video Advisories</title>
    <item>
      <media:title>Thumbnail</media:title>
      <media:description>Poster frame</media:description>
      <title>Real title</title>
      <description>Real description</description>
      <atom:link href="https://video.feeds.test/1" rel="alternate"/>
    </item>
  </channel>
</rss>
"""


class TestNamespacedElements:
    """Test that prefixed extension elements never stand in for core fields."""

    def test_media_elements_do_not_override_title(self):
        entry = parse_feed(MRSS_FEED, "video").entries[0]
        assert entry.title == "Real title"
        assert entry.description == "Real description"

    def test_atom_link_used_when_item_has_no_link(self):
        entry = parse_feed(MRSS_FEED, "video").entries[0]
        assert entry.link == "https://video.feeds.test/1"


class TestUndeclaredEntities:
    """Test HTML entities that XML does not define."""

    def test_nbsp_becomes_space(self):
        raw = (
            "<rss><channel><title>Feed</title><item>"
            "<title>Beacon&nbsp;to evil-updates.net</title>"
            "<description>Seen at 198.51.100.7&nbsp;today</description>"
            "</item></channel></rss>"
        )
        entry = parse_feed(raw, "nbsp").entries[0]
        assert entry.title == "Beacon to evil-updates.net"
        assert entry.description == "Seen at 198.51.100.7 today"
