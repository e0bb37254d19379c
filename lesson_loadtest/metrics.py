"""
Metric aggregation context and the ``Trend`` recorder.

:class:`MetricSeries` accumulates every sample of a run (or of one
ingested result log) keyed by metric name.  It is an explicit object
handed to whoever records into it: the Locust listeners keep one on the
environment, and each report run builds its own, so concurrent runs in
the same process never share state.

Samples of the ``checks`` metric carry a ``check`` tag; the series keeps
a pass/fail tally per check name alongside the raw 0/1 values.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

CHECKS_METRIC = "checks"

Sink = Callable[[str, float, dict[str, str] | None], None]


@dataclass(frozen=True)
class CheckTally:
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def rate(self) -> float:
        """Fraction of passing evaluations, ``0.0`` when nothing was checked."""
        return self.passes / self.total if self.total else 0.0


class MetricSeries(Mapping[str, list[float]]):
    """
    Append-only mapping of metric name to recorded values.

    Appends are guarded by a lock so Locust greenlets (or plain threads
    in tests) can record concurrently.  Reads return copies.

    Args:
        sink: Optional callable receiving ``(name, value, tags)`` for every
            sample, used to stream samples into the JSON-lines result log.
    """

    def __init__(self, sink: Sink | None = None):
        self._values: dict[str, list[float]] = {}
        self._checks: dict[str, CheckTally] = {}
        self._lock = threading.Lock()
        self._sink = sink

    def add(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values.setdefault(name, []).append(value)
            if name == CHECKS_METRIC and tags and "check" in tags:
                tally = self._checks.get(tags["check"], CheckTally())
                if value:
                    tally = CheckTally(tally.passes + 1, tally.fails)
                else:
                    tally = CheckTally(tally.passes, tally.fails + 1)
                self._checks[tags["check"]] = tally

        if self._sink is not None:
            self._sink(name, value, tags)

    def __getitem__(self, name: str) -> list[float]:
        with self._lock:
            return list(self._values[name])

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def total(self, name: str) -> float | None:
        """Sum of a counter metric, or ``None`` if it was never recorded."""
        values = self.get(name)
        return sum(values) if values else None

    def check_tally(self) -> dict[str, CheckTally]:
        """Pass/fail counts per check name, in first-seen order."""
        with self._lock:
            return dict(self._checks)


def record_check(series: MetricSeries, name: str, passed: bool) -> None:
    """Record one evaluation of the check called *name*."""
    series.add(CHECKS_METRIC, 1.0 if passed else 0.0, {"check": name})


def response_duration_ms(response: Any) -> float | None:
    """
    Extract the request duration in milliseconds from a response.

    Locust responses carry ``request_meta["response_time"]``; plain
    ``requests`` responses carry an ``elapsed`` timedelta.  Anything
    else yields ``None``.
    """
    if response is None:
        return None

    meta = getattr(response, "request_meta", None)
    if isinstance(meta, dict) and "response_time" in meta:
        duration = meta["response_time"]
    else:
        elapsed = getattr(response, "elapsed", None)
        duration = elapsed.total_seconds() * 1000 if isinstance(elapsed, timedelta) else None

    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        return None
    if not math.isfinite(duration):
        return None
    return float(duration)


class Trend:
    """Named latency series recorded into a :class:`MetricSeries`."""

    def __init__(self, name: str, series: MetricSeries):
        self.name = name
        self.series = series

    def add(self, value: float, tags: dict[str, str] | None = None) -> None:
        self.series.add(self.name, value, tags)

    def record(self, response: Any) -> None:
        """Add the response's duration; silently ignore missing or malformed timings."""
        duration = response_duration_ms(response)
        if duration is not None:
            self.add(duration)
