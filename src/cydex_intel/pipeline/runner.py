"""
Feed runner: fetch, parse and extract many feeds with per-feed isolation.

Each feed is an independent unit of work on a bounded thread pool. A feed
that times out, returns an HTTP error, or serves broken XML yields an
"error" FeedStatus and no items; the other feeds are unaffected. Results
are merged by the calling thread once each feed finishes.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import closing
from typing import List, Optional, Sequence, Tuple

from cydex_intel.core import config
from cydex_intel.core.errors import FeedIngestionError
from cydex_intel.core.http import HttpClient
from cydex_intel.core.metrics import MetricsCollector, get_metrics
from cydex_intel.core.models import (
    FEED_STATUS_ACTIVE,
    FEED_STATUS_ERROR,
    FeedConfig,
    FeedStatus,
    RunResult,
    ThreatIntelItem,
)
from cydex_intel.feeds.extraction import extract_feed
from cydex_intel.feeds.parser import parse_feed

logger = logging.getLogger(__name__)

FeedOutcome = Tuple[List[ThreatIntelItem], FeedStatus]


class FeedRunner:
    """
    Runs the fetch -> parse -> extract pipeline over a list of feeds.

    Args:
        client: HttpClient shared by all feeds. When omitted each feed gets
            its own client so no session is shared between worker threads.
        max_workers: Upper bound on feeds fetched at the same time.
        timeout: Default per-feed fetch deadline in seconds; a feed's own
            timeout_seconds takes precedence.
        metrics: Collector for run metrics (defaults to the global one).
    """

    def __init__(
        self,
        *,
        client: Optional[HttpClient] = None,
        max_workers: int = config.MAX_WORKERS,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.max_workers = max_workers
        self.timeout = timeout
        self.metrics = metrics if metrics is not None else get_metrics()

    def _fetch(self, feed: FeedConfig) -> str:
        timeout = feed.timeout_seconds if feed.timeout_seconds is not None else self.timeout
        if self.client is not None:
            return self.client.fetch(feed.url, timeout)
        with closing(HttpClient(timeout=timeout)) as client:
            return client.fetch(feed.url, timeout)

    def run_feed(self, feed: FeedConfig) -> FeedOutcome:
        """
        Process one feed. Never raises: any failure becomes an error status.
        """
        logger.info(f"Ingesting feed: {feed.feed_id} ({feed.url})")
        try:
            raw = self._fetch(feed)
            parsed = parse_feed(raw, feed.feed_id)
            items = extract_feed(parsed, feed)
        except FeedIngestionError as e:
            logger.warning(f"{feed.feed_id}: {type(e).__name__}: {e}")
            return [], FeedStatus(feed_id=feed.feed_id, status=FEED_STATUS_ERROR, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error ingesting feed {feed.feed_id}: {e}", exc_info=True)
            return [], FeedStatus(
                feed_id=feed.feed_id,
                status=FEED_STATUS_ERROR,
                error=str(e) or type(e).__name__,
            )

        logger.info(f"{feed.feed_id}: extracted {len(items)} items from '{parsed.title}'")
        return items, FeedStatus(
            feed_id=feed.feed_id,
            status=FEED_STATUS_ACTIVE,
            last_update=parsed.fetched_at,
        )

    def _timed_run_feed(self, feed: FeedConfig) -> Tuple[List[ThreatIntelItem], FeedStatus, float]:
        started = time.monotonic()
        items, status = self.run_feed(feed)
        return items, status, time.monotonic() - started

    def _record(self, feed: FeedConfig, items: List[ThreatIntelItem], status: FeedStatus, duration: float) -> None:
        self.metrics.increment("feeds_processed_total", labels={"status": status.status})
        self.metrics.increment("items_extracted_total", len(items), labels={"feed_id": feed.feed_id})
        self.metrics.observe("feed_duration_seconds", duration, labels={"feed_id": feed.feed_id})

    def run(self, feeds: Sequence[FeedConfig]) -> RunResult:
        """
        Run every feed and merge the results.

        Items and statuses follow the order of feeds; items within a feed keep
        their entry order.
        """
        if not feeds:
            return RunResult()

        workers = min(self.max_workers, len(feeds))
        logger.info(f"Starting ingestion of {len(feeds)} feeds with {workers} workers")
        self.metrics.start_timer("feed_run")

        outcomes: List[Optional[FeedOutcome]] = [None] * len(feeds)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feed") as executor:
            future_to_index = {
                executor.submit(self._timed_run_feed, feed): index
                for index, feed in enumerate(feeds)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                items, status, duration = future.result()
                outcomes[index] = (items, status)
                self._record(feeds[index], items, status, duration)

        self.metrics.stop_timer("feed_run")

        all_items: List[ThreatIntelItem] = []
        statuses: List[FeedStatus] = []
        for items, status in outcomes:
            all_items.extend(items)
            statuses.append(status)

        active = sum(1 for s in statuses if s.is_active)
        self.metrics.set_gauge("feeds_active", active)
        self.metrics.set_gauge("feeds_error", len(statuses) - active)
        logger.info(
            f"Ingestion finished: {active}/{len(statuses)} feeds active, {len(all_items)} items"
        )
        return RunResult(items=tuple(all_items), statuses=tuple(statuses))


def run_feeds(feeds: Sequence[FeedConfig], **kwargs) -> RunResult:
    """Run feeds with a FeedRunner built from kwargs."""
    return FeedRunner(**kwargs).run(feeds)
