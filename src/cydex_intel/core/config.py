"""
Central configuration constants for CyDex Intel.

Supports environment variables for configuration:
- CYDEX_REQUEST_TIMEOUT: Per-feed fetch deadline in seconds (default: 10)
- CYDEX_MAX_WORKERS: Maximum feeds fetched concurrently (default: 8)
- CYDEX_USER_AGENT: User-Agent sent with every feed request
- CYDEX_LOG_LEVEL: Logging level (default: INFO)
- CYDEX_LOG_FILE: Log file path (default: unset, console only)
"""

import os
from pathlib import Path
from typing import Optional, Tuple

# ---- Networking ----

REQUEST_TIMEOUT_SECONDS = float(os.getenv("CYDEX_REQUEST_TIMEOUT", "10"))
FETCH_CHUNK_SIZE = 8192

USER_AGENT = os.getenv(
    "CYDEX_USER_AGENT",
    "CyDex-Platform/1.0 (Threat Intelligence Aggregator)",
)
FEED_ACCEPT_HEADER = "application/rss+xml, application/atom+xml, application/xml, text/xml"

# ---- Orchestration ----

MAX_WORKERS = int(os.getenv("CYDEX_MAX_WORKERS", "8"))

# ---- Extraction ----

# Illustrative domains that show up in advisories but are never real IOCs
PLACEHOLDER_DOMAINS: Tuple[str, ...] = ("example.com",)

# ---- Logging ----

LOG_LEVEL = os.getenv("CYDEX_LOG_LEVEL", "INFO")
_log_file = os.getenv("CYDEX_LOG_FILE")
LOG_FILE: Optional[Path] = Path(_log_file) if _log_file else None
