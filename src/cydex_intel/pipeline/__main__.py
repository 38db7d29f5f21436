"""
Feed ingestion CLI

Runs the fetch -> parse -> extract pipeline over the feeds given on the
command line and writes the items, feed statuses and a health summary as
JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from cydex_intel.core import config
from cydex_intel.core.logging_utils import configure_logging
from cydex_intel.core.metrics import get_metrics
from cydex_intel.core.models import SEVERITY_LEVELS, FeedConfig, RunResult
from cydex_intel.pipeline.deduplication import deduplicate_items
from cydex_intel.pipeline.health import summarize_feed_health, summarize_items
from cydex_intel.pipeline.runner import FeedRunner

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch threat intelligence feeds and emit classified items as JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One feed, default severity medium
  python -m cydex_intel.pipeline --feed krebs https://krebsonsecurity.com/feed/

  # Several feeds with their own default severities, written to a file
  python -m cydex_intel.pipeline \\
      --feed us-cert https://www.cisa.gov/uscert/ncas/alerts.xml critical \\
      --feed securelist https://securelist.com/feed/ high \\
      --dedupe --output data/threats.json
        """,
    )
    parser.add_argument(
        "--feed",
        dest="feeds",
        nargs="+",
        action="append",
        default=[],
        metavar="ID URL [SEVERITY]",
        help="Feed to ingest: identifier, URL and optional default severity "
             f"({', '.join(SEVERITY_LEVELS)}; default: medium). Repeatable.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.REQUEST_TIMEOUT_SECONDS,
        help=f"Per-feed fetch deadline in seconds (default: {config.REQUEST_TIMEOUT_SECONDS:g}).",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=config.MAX_WORKERS,
        help=f"Maximum feeds fetched concurrently (default: {config.MAX_WORKERS}).",
    )
    parser.add_argument(
        "--dedupe",
        action="store_true",
        help="Drop items whose id was already produced by an earlier feed.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the JSON report here instead of stdout.",
    )
    parser.add_argument(
        "--metrics-output",
        type=Path,
        default=None,
        help="Write run metrics in Prometheus text format to this file.",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=config.LOG_FILE,
        help="Also write logs to this file.",
    )
    args = parser.parse_args(argv)
    try:
        args.feed_configs = build_feed_configs(args.feeds)
    except ValueError as e:
        parser.error(str(e))
    return args


def build_feed_configs(feed_args: Sequence[Sequence[str]]) -> List[FeedConfig]:
    """Turn repeated --feed ID URL [SEVERITY] values into FeedConfigs."""
    feeds = []
    for values in feed_args:
        if len(values) not in (2, 3):
            raise ValueError(f"--feed expects ID URL [SEVERITY], got: {' '.join(values)}")
        feed_id, url = values[0], values[1]
        severity = values[2].lower() if len(values) == 3 else "medium"
        feeds.append(FeedConfig(feed_id=feed_id, url=url, default_severity=severity))
    return feeds


def build_report(result: RunResult, *, dedupe: bool = False) -> dict:
    items = deduplicate_items(result.items) if dedupe else list(result.items)
    return {
        "items": [item.to_dict() for item in items],
        "statuses": [status.to_dict() for status in result.statuses],
        "health": summarize_feed_health(result.statuses),
        "summary": summarize_items(items),
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, log_file=args.log_file)

    runner = FeedRunner(max_workers=args.max_workers, timeout=args.timeout)
    result = runner.run(args.feed_configs)
    report = build_report(result, dedupe=args.dedupe)

    payload = json.dumps(report, indent=2, ensure_ascii=False)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info(f"Wrote {len(report['items'])} items to {args.output}")
    else:
        sys.stdout.write(payload + "\n")

    metrics = get_metrics()
    metrics.log_summary()
    if args.metrics_output:
        args.metrics_output.parent.mkdir(parents=True, exist_ok=True)
        args.metrics_output.write_text(metrics.format_prometheus(), encoding="utf-8")

    if result.statuses and not any(s.is_active for s in result.statuses):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
