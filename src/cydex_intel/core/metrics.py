"""
Prometheus-style metrics for feed ingestion runs.

The runner records, per run:
- feeds_processed_total{status}: feeds ending active or in error
- items_extracted_total{feed_id}: items produced by each feed
- feed_duration_seconds{feed_id}: fetch-parse-extract time per feed
- feeds_active / feeds_error: gauges for the latest run
- feed_run_duration_seconds: wall time of the whole run
"""

import logging
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

Labels = Optional[Dict[str, str]]


class MetricsCollector:
    """In-memory counters, gauges and observations keyed by name and labels."""

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}
        self.histograms: Dict[str, List[float]] = defaultdict(list)
        self._timers: Dict[str, float] = {}

    def increment(self, metric_name: str, value: int = 1, labels: Labels = None):
        key = self._make_key(metric_name, labels)
        self.counters[key] += value
        logger.debug(f"[METRIC] {key} += {value}")

    def set_gauge(self, metric_name: str, value: float, labels: Labels = None):
        key = self._make_key(metric_name, labels)
        self.gauges[key] = value
        logger.debug(f"[METRIC] {key} = {value}")

    def observe(self, metric_name: str, value: float, labels: Labels = None):
        key = self._make_key(metric_name, labels)
        self.histograms[key].append(value)
        logger.debug(f"[METRIC] {key} observed {value:.3f}")

    def start_timer(self, metric_name: str, labels: Labels = None):
        self._timers[self._make_key(metric_name, labels)] = time.monotonic()

    def stop_timer(self, metric_name: str, labels: Labels = None) -> Optional[float]:
        """Record the time since start_timer as <name>_duration_seconds."""
        started = self._timers.pop(self._make_key(metric_name, labels), None)
        if started is None:
            return None
        duration = time.monotonic() - started
        self.observe(f"{metric_name}_duration_seconds", duration, labels)
        return duration

    def get_counter(self, metric_name: str, labels: Labels = None) -> int:
        return self.counters.get(self._make_key(metric_name, labels), 0)

    @staticmethod
    def _make_key(metric_name: str, labels: Labels) -> str:
        if not labels:
            return metric_name
        label_str = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
        return f"{metric_name}{{{label_str}}}"

    def format_prometheus(self) -> str:
        """Render every metric in the Prometheus text exposition format."""
        generated = datetime.now(timezone.utc).isoformat(timespec="seconds")
        lines = [f"# CyDex Intel metrics, generated {generated}"]
        typed = set()

        def type_line(key: str, kind: str):
            name = key.split("{", 1)[0]
            if name not in typed:
                typed.add(name)
                lines.append(f"# TYPE {name} {kind}")

        for key, value in sorted(self.counters.items()):
            type_line(key, "counter")
            lines.append(f"{key} {value}")
        for key, value in sorted(self.gauges.items()):
            type_line(key, "gauge")
            lines.append(f"{key} {value:g}")
        # Observations are exported as summaries without quantiles
        for key, values in sorted(self.histograms.items()):
            if not values:
                continue
            type_line(key, "summary")
            name, brace, label_part = key.partition("{")
            lines.append(f"{name}_count{brace}{label_part} {len(values)}")
            lines.append(f"{name}_sum{brace}{label_part} {sum(values):.6f}")
        return "\n".join(lines) + "\n"

    def log_summary(self):
        if not (self.counters or self.gauges or self.histograms):
            return
        logger.info("Run metrics:")
        for key, value in sorted({**self.counters, **self.gauges}.items()):
            logger.info(f"  {key}: {value}")
        for key, values in sorted(self.histograms.items()):
            if values:
                logger.info(
                    f"  {key}: n={len(values)} mean={sum(values) / len(values):.2f}s max={max(values):.2f}s"
                )


_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Process-wide collector used when the runner is not given one."""
    return _metrics
