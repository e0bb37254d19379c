"""
Summary statistics over recorded metric values.

Percentiles use a nearest-rank estimator: sort ascending and take the
value at index ``floor(N * fraction)``.  There is no interpolation and
no lower bound on the rank, so small samples lean toward the maximum.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class StatSummary:
    """Average, extremes and the two tail percentiles of one metric."""

    avg: float
    min: float
    max: float
    p95: float
    p99: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


EMPTY_SUMMARY = StatSummary(avg=0, min=0, max=0, p95=0, p99=0)


def percentile(sorted_values: Sequence[float], fraction: float) -> float:
    """
    Nearest-rank percentile of an already sorted, non-empty sequence.

    Args:
        sorted_values: Values in ascending order.
        fraction: Percentile as a fraction, e.g. ``0.95``.
    """
    index = math.floor(len(sorted_values) * fraction)
    # floor(N * 1.0) == N is the only index past the end.
    return sorted_values[min(index, len(sorted_values) - 1)]


def compute(values: Sequence[float]) -> StatSummary:
    """Summarise *values*; an empty collection yields an all-zero summary."""
    if not values:
        return EMPTY_SUMMARY

    ordered = sorted(values)
    return StatSummary(
        avg=sum(ordered) / len(ordered),
        min=ordered[0],
        max=ordered[-1],
        p95=percentile(ordered, 0.95),
        p99=percentile(ordered, 0.99),
    )


def summarize(series: Mapping[str, Sequence[float]]) -> dict[str, StatSummary]:
    """Compute a :class:`StatSummary` for every metric that has values."""
    return {name: compute(values) for name, values in series.items() if values}
