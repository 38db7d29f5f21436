"""
Multi-feed orchestration.

Run with: python -m cydex_intel.pipeline --feed ID URL [SEVERITY]
"""

from cydex_intel.pipeline.runner import FeedRunner, run_feeds

__all__ = [
    "FeedRunner",
    "run_feeds",
]
