"""
HTML report generation.

Reads the JSON-lines result log of a run, summarises every metric,
evaluates the run's thresholds and renders a single self-contained HTML
page (inline CSS, no external assets) that can be opened straight from
disk or attached to a CI build.

Statistics that were never recorded show as ``N/A`` rather than a
made-up default, so an empty or partial log still yields a readable
report.

Exit codes follow the same three-state convention as the threshold
checker:

- ``0`` - report written
- ``2`` - no report written (missing result log, bad options file, etc.)
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape

from lesson_loadtest.config import get_config
from lesson_loadtest.metrics import CheckTally, MetricSeries
from lesson_loadtest.options import RunOptions, load_options
from lesson_loadtest.results import ingest
from lesson_loadtest.schedule import StageSchedule, format_duration
from lesson_loadtest.stats import StatSummary, summarize
from lesson_loadtest.thresholds import ThresholdVerdict, evaluate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SCRIPT_ERROR = 2

NOT_AVAILABLE = "N/A"

# Counters summed into the "totals" block of the report.
TOTAL_METRICS = ("iterations", "http_reqs", "data_received", "data_sent")

_env = Environment(
    loader=PackageLoader("lesson_loadtest", "templates"),
    autoescape=select_autoescape(["html", "j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass(frozen=True)
class RunMetadata:
    """Static description of the run printed in the report header and footer."""

    title: str = "Lesson API Performance Test Report"
    subtitle: str = "Music Lesson API - Performance & Load Testing"
    stages: Sequence[tuple[str, str]] = ()
    total_duration: str | None = None
    generated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def for_schedule(cls, schedule: StageSchedule, **kwargs) -> "RunMetadata":
        return cls(
            stages=schedule.describe(),
            total_duration=format_duration(schedule.total_duration),
            **kwargs,
        )


def format_number(value: float | None, decimals: int = 2, unit: str = "") -> str:
    """Fixed-point formatting with ``N/A`` (and no unit) for missing values."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.{decimals}f}{unit}"


def format_percent(fraction: float | None) -> str:
    if fraction is None:
        return NOT_AVAILABLE
    return f"{fraction * 100:.2f}%"


def render_report(
    summaries: Mapping[str, StatSummary],
    verdicts: Sequence[ThresholdVerdict],
    metadata: RunMetadata,
    totals: Mapping[str, float | None] | None = None,
    checks: Mapping[str, CheckTally] | None = None,
) -> str:
    """
    Render the report page.

    Args:
        summaries: Statistics per metric name; absent metrics render as
            ``N/A``.
        verdicts: Threshold outcomes, in declaration order.
        metadata: Title, stage description and generation time.
        totals: Summed counters (``iterations``, ``http_reqs``,
            ``data_received``, ``data_sent``) and ``vus_max``.
        checks: Pass/fail tally per check name.

    Returns:
        The complete HTML document.
    """
    totals = totals or {}
    checks = checks or {}

    def stat(metric: str, name: str) -> float | None:
        summary = summaries.get(metric)
        return getattr(summary, name) if summary is not None else None

    def kilobytes(metric: str) -> float | None:
        value = totals.get(metric)
        return value / 1024 if value is not None else None

    check_passes = sum(tally.passes for tally in checks.values())
    check_total = sum(tally.total for tally in checks.values())

    template = _env.get_template("report.html.j2")
    return template.render(
        metadata=metadata,
        verdicts=verdicts,
        totals=totals,
        checks=checks,
        check_passes=check_passes,
        check_total=check_total,
        check_rate=check_passes / check_total if check_total else stat("checks", "avg"),
        error_rate=stat("http_req_failed", "avg"),
        stat=stat,
        kilobytes=kilobytes,
        fmt=format_number,
        pct=format_percent,
        na=NOT_AVAILABLE,
    )


def collect_totals(series: MetricSeries) -> dict[str, float | None]:
    totals: dict[str, float | None] = {name: series.total(name) for name in TOTAL_METRICS}
    peak = series.get("vus_max") or series.get("vus")
    totals["vus_max"] = max(peak) if peak else None
    return totals


def build_report(
    series: MetricSeries,
    options: RunOptions,
    metadata: RunMetadata | None = None,
) -> str:
    """Summarise *series*, evaluate the thresholds from *options* and render the page."""
    metadata = metadata or RunMetadata.for_schedule(options.schedule)
    return render_report(
        summaries=summarize(series),
        verdicts=evaluate(options.thresholds, series),
        metadata=metadata,
        totals=collect_totals(series),
        checks=series.check_tally(),
    )


def write_report(html: str, path: Path) -> Path:
    """Write *html* to *path*, creating parent directories, and return the absolute path."""
    path = Path(path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    return path


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the report generator."""
    config = get_config()
    parser = argparse.ArgumentParser(
        description="Render an HTML report from a JSON-lines load-test result log."
    )
    parser.add_argument(
        "--results",
        type=Path,
        default=config.RESULTS_PATH,
        help="Path to the JSON-lines result log",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=config.REPORT_PATH,
        help="Where to write the HTML report",
    )
    parser.add_argument(
        "--options",
        type=Path,
        default=config.OPTIONS_PATH,
        help="Run options YAML holding the stages and thresholds",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point: ingest the result log, render and write the report.

    Returns:
        ``EXIT_OK`` when the report was written, ``EXIT_SCRIPT_ERROR``
        when the result log or options could not be read.
    """
    args = parse_args(argv)

    try:
        options = load_options(args.options)
        series = ingest(args.results)
    except (OSError, ValueError) as exc:
        print(f"Report generation failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    logger.info("Ingested %d metric(s) from %s", len(series), args.results)
    output = write_report(build_report(series, options), args.output)
    print(f"Report generated: {output}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
