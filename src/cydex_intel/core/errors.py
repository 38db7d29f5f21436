"""
Exception hierarchy for feed ingestion.

Every error raised by the fetch and parse stages derives from
FeedIngestionError so the runner can turn it into a per-feed error status.
"""

from typing import Optional


class FeedIngestionError(Exception):
    """Base class for per-feed ingestion failures."""

    def __init__(
        self,
        message: str,
        *,
        feed_id: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.feed_id = feed_id
        self.url = url

    def __str__(self) -> str:
        return self.message


class FetchTimeout(FeedIngestionError):
    """The feed response was not fully received before its deadline."""

    def __init__(self, url: str, timeout_seconds: float, *, feed_id: Optional[str] = None) -> None:
        super().__init__(
            f"Timed out after {timeout_seconds:g}s fetching {url}",
            feed_id=feed_id,
            url=url,
        )
        self.timeout_seconds = timeout_seconds


class FetchError(FeedIngestionError):
    """
    The feed request failed.

    status_code is None for transport failures (DNS, refused connection, TLS).
    """

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        reason: str = "",
        *,
        feed_id: Optional[str] = None,
    ) -> None:
        if status_code is not None:
            message = f"HTTP {status_code}: {reason}".rstrip(": ")
        else:
            message = f"Failed to fetch {url}: {reason}" if reason else f"Failed to fetch {url}"
        super().__init__(message, feed_id=feed_id, url=url)
        self.status_code = status_code
        self.reason = reason


class MalformedFeed(FeedIngestionError):
    """The document has no channel or feed container element."""
