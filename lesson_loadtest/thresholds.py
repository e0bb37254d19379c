"""
Threshold expressions and verdicts.

A threshold pairs a metric name with an expression over one of its
aggregates, written the same way the load-testing runtime declares
them::

    thresholds:
      http_req_duration: ["p(95)<2000", "p(99)<3000"]

The same :class:`Threshold` objects are evaluated at the end of a run
(to set the process exit code), by the CI gate, and when rendering the
report, so a ceiling is declared exactly once.
"""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from lesson_loadtest.stats import percentile

_EXPRESSION = re.compile(
    r"^\s*(?P<aggregate>avg|min|max|med|count|rate|p\(\s*(?P<pct>\d+(?:\.\d+)?)\s*\))"
    r"\s*(?P<op><=|>=|==|!=|<|>)\s*(?P<limit>-?\d+(?:\.\d+)?)\s*$"
)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

# Metrics whose values are durations in milliseconds; used for labels only.
TIME_METRICS = frozenset(
    {"http_req_duration", "checkout_duration", "iteration_duration", "http_req_waiting"}
)


def aggregate(values: Sequence[float], name: str) -> float:
    """
    Reduce *values* with the named aggregate (``avg``, ``p(95)``, ...).

    ``rate`` is the mean of 0/1 samples and ``count`` the number of
    samples; percentiles use the nearest-rank rule from :mod:`.stats`.
    """
    if name == "count":
        return float(len(values))
    if not values:
        raise ValueError(f"Cannot compute {name} of an empty series")

    ordered = sorted(values)
    if name in ("avg", "rate"):
        return sum(ordered) / len(ordered)
    if name == "min":
        return ordered[0]
    if name == "max":
        return ordered[-1]
    if name == "med":
        return percentile(ordered, 0.5)

    match = re.fullmatch(r"p\((\d+(?:\.\d+)?)\)", name)
    if match is None:
        raise ValueError(f"Unknown aggregate: {name}")
    return percentile(ordered, float(match.group(1)) / 100)


@dataclass(frozen=True)
class Threshold:
    """``<metric> <aggregate> <op> <limit>``, e.g. ``checkout_duration p(95) < 2000``."""

    metric: str
    aggregate: str
    op: str
    limit: float
    source: str

    @classmethod
    def parse(cls, metric: str, expression: str) -> "Threshold":
        """
        Parse an expression such as ``"p(95)<2000"`` for *metric*.

        Raises:
            ValueError: If the expression is not a supported threshold.
        """
        match = _EXPRESSION.match(str(expression))
        if match is None:
            raise ValueError(f"Invalid threshold for {metric}: {expression!r}")

        aggregate_name = match.group("aggregate")
        if match.group("pct") is not None:
            pct = float(match.group("pct"))
            if not 0 <= pct <= 100:
                raise ValueError(f"Percentile out of range for {metric}: {expression!r}")
            aggregate_name = f"p({match.group('pct')})"

        return cls(
            metric=metric,
            aggregate=aggregate_name,
            op=match.group("op"),
            limit=float(match.group("limit")),
            source=str(expression).strip(),
        )

    @property
    def label(self) -> str:
        unit = "ms" if self.metric in TIME_METRICS and self.aggregate not in ("count", "rate") else ""
        return f"{self.metric} {self.aggregate} {self.op} {_format_limit(self.limit)}{unit}"

    def check(self, observed: float) -> bool:
        return _OPERATORS[self.op](observed, self.limit)


@dataclass(frozen=True)
class ThresholdVerdict:
    """Outcome of one threshold; ``observed`` is ``None`` when the metric was never recorded."""

    label: str
    observed: float | None
    passed: bool


def _format_limit(limit: float) -> str:
    return str(int(limit)) if limit.is_integer() else str(limit)


def thresholds_from_config(data: Mapping[str, Any] | None) -> list[Threshold]:
    """
    Build thresholds from a ``{metric: [expression, ...]}`` mapping.

    A single expression string is accepted in place of a list.
    """
    thresholds: list[Threshold] = []
    for metric, expressions in (data or {}).items():
        if isinstance(expressions, str):
            expressions = [expressions]
        if not isinstance(expressions, list):
            raise ValueError(f"Thresholds for {metric} must be a list of expressions")
        thresholds.extend(Threshold.parse(metric, expression) for expression in expressions)
    return thresholds


def thresholds_to_config(thresholds: Iterable[Threshold]) -> dict[str, list[str]]:
    data: dict[str, list[str]] = {}
    for threshold in thresholds:
        data.setdefault(threshold.metric, []).append(threshold.source)
    return data


def evaluate(
    thresholds: Iterable[Threshold],
    series: Mapping[str, Sequence[float]],
) -> list[ThresholdVerdict]:
    """
    Evaluate each threshold against the recorded values.

    A metric with no recorded values cannot satisfy its threshold and
    is reported as failed with no observed value.
    """
    verdicts = []
    for threshold in thresholds:
        values = series.get(threshold.metric) or []
        if not values and threshold.aggregate != "count":
            verdicts.append(ThresholdVerdict(threshold.label, None, False))
            continue

        observed = aggregate(values, threshold.aggregate)
        passed = not math.isnan(observed) and threshold.check(observed)
        verdicts.append(ThresholdVerdict(threshold.label, observed, passed))
    return verdicts
