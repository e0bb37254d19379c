"""
JSON-lines result log: writer and ingestor.

During a run every sample is streamed to a line-delimited JSON file in
the same shape the k6 ``--out json`` output uses, so existing tooling
can read it::

    {"type": "Metric", "metric": "checkout_duration", "data": {"name": "checkout_duration", "type": "trend", "contains": "time"}}
    {"type": "Point", "metric": "checkout_duration", "data": {"time": "...", "value": 123.4, "tags": {}}}

After the run, :func:`ingest` reads the file back into a
:class:`~lesson_loadtest.metrics.MetricSeries`.  Only ``Point`` lines
with a finite numeric ``data.value`` count; anything else, including
lines that are not JSON or not UTF-8, is skipped without aborting the
rest of the file.
"""

from __future__ import annotations

import json
import logging
import math
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from lesson_loadtest.metrics import MetricSeries

logger = logging.getLogger(__name__)

# (type, contains) declared for each metric the harness emits.
METRIC_KINDS: dict[str, tuple[str, str]] = {
    "http_req_duration": ("trend", "time"),
    "checkout_duration": ("trend", "time"),
    "iteration_duration": ("trend", "time"),
    "http_reqs": ("counter", "default"),
    "iterations": ("counter", "default"),
    "data_sent": ("counter", "data"),
    "data_received": ("counter", "data"),
    "http_req_failed": ("rate", "default"),
    "checks": ("rate", "default"),
    "vus": ("gauge", "default"),
    "vus_max": ("gauge", "default"),
}


class ResultLogWriter:
    """
    Append samples to a JSON-lines file.

    Safe to call from many Locust greenlets at once; each line is
    written and flushed under a lock so lines never interleave.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._handle: TextIO | None = self.path.open("w", encoding="utf-8")
        self._declared: set[str] = set()
        self._lock = threading.Lock()

    def __enter__(self) -> "ResultLogWriter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def write_point(self, metric: str, value: float, tags: dict[str, str] | None = None) -> None:
        point = {
            "type": "Point",
            "metric": metric,
            "data": {
                "time": datetime.now(timezone.utc).isoformat(),
                "value": value,
                "tags": dict(tags or {}),
            },
        }
        with self._lock:
            if self._handle is None:
                return
            if metric not in self._declared:
                self._declared.add(metric)
                self._write_line(self._declaration(metric))
            self._write_line(point)

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    @staticmethod
    def _declaration(metric: str) -> dict[str, Any]:
        kind, contains = METRIC_KINDS.get(metric, ("trend", "default"))
        return {
            "type": "Metric",
            "metric": metric,
            "data": {"name": metric, "type": kind, "contains": contains},
        }

    def _write_line(self, record: dict[str, Any]) -> None:
        self._handle.write(json.dumps(record) + "\n")
        self._handle.flush()


def _point_value(record: Any) -> float | None:
    """Return the numeric value of a ``Point`` record, or ``None`` if it is not one."""
    if not isinstance(record, dict) or record.get("type") != "Point":
        return None
    if not isinstance(record.get("metric"), str):
        return None

    data = record.get("data")
    if not isinstance(data, dict):
        return None

    value = data.get("value")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def ingest(path: Path, series: MetricSeries | None = None) -> MetricSeries:
    """
    Read a JSON-lines result log into a metric series.

    Args:
        path: The log written by :class:`ResultLogWriter` (or by k6).
        series: Series to append to; a new one is created when omitted.

    Returns:
        The series holding every ingested value in file order.

    Raises:
        OSError: If the file is missing or unreadable.
    """
    series = series if series is not None else MetricSeries()
    content = Path(path).read_bytes()

    skipped = 0
    for line_number, raw in enumerate(content.splitlines(), start=1):
        if not raw.strip():
            continue
        try:
            record = json.loads(raw.decode("utf-8"))
        except ValueError:
            logger.debug("Skipping malformed line %d in %s", line_number, path)
            skipped += 1
            continue

        value = _point_value(record)
        if value is None:
            continue

        tags = record["data"].get("tags")
        series.add(record["metric"], value, tags if isinstance(tags, dict) else None)

    if skipped:
        logger.info("Skipped %d malformed line(s) in %s", skipped, path)
    return series
