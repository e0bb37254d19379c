"""
Unit tests for the HTML report renderer.

Key SDET Concepts Demonstrated:
- Graceful degradation: absent metrics render as a placeholder
- Output escaping of user-controlled strings
"""

from __future__ import annotations

from datetime import datetime

import pytest

from lesson_loadtest.metrics import CheckTally, MetricSeries, record_check
from lesson_loadtest.report import (
    NOT_AVAILABLE,
    RunMetadata,
    build_report,
    collect_totals,
    format_number,
    render_report,
    write_report,
)
from lesson_loadtest.stats import StatSummary
from lesson_loadtest.thresholds import ThresholdVerdict

pytestmark = pytest.mark.unit

METADATA = RunMetadata(
    stages=[("Ramp-up", "0 to 10 VUs over 5s")],
    total_duration="5s",
    generated_at=datetime(2024, 1, 2, 3, 4, 5),
)


def test_empty_statistics_render_placeholders():
    """Test that an empty summary map renders N/A everywhere instead of failing."""
    html = render_report({}, [], METADATA)

    assert html.startswith("<!DOCTYPE html>")
    assert "</html>" in html
    assert f"{NOT_AVAILABLE}ms" not in html
    assert f"{NOT_AVAILABLE}KB" not in html
    # One placeholder per HTTP, trend and execution statistic, plus the summary cards.
    assert html.count(NOT_AVAILABLE) >= 18
    assert "0.00ms" not in html


def test_statistics_are_formatted_with_two_decimals():
    """Test that recorded statistics appear instead of placeholders."""
    summaries = {
        "http_req_duration": StatSummary(avg=10, min=1, max=50, p95=45, p99=49.5),
        "checkout_duration": StatSummary(avg=12.345, min=2, max=60, p95=55, p99=59),
    }

    html = render_report(summaries, [], METADATA)

    assert "10.00ms" in html
    assert "49.50ms" in html
    assert "12.35ms" in html


def test_threshold_verdicts_are_styled_by_outcome():
    """Test passed/failed styling and the N/A badge for a missing metric."""
    verdicts = [
        ThresholdVerdict("http_req_duration p(95) < 2000ms", 120.0, True),
        ThresholdVerdict("checkout_duration p(99) < 3000ms", None, False),
    ]

    html = render_report({}, verdicts, METADATA)

    assert '<div class="threshold-item passed">' in html
    assert '<span class="badge passed">120.00</span>' in html
    assert '<div class="threshold-item failed">' in html
    assert f'<span class="badge failed">{NOT_AVAILABLE}</span>' in html


def test_check_tally_and_totals_are_shown():
    """Test the checks list and the counters block."""
    checks = {"Lesson status 201": CheckTally(9, 1)}
    totals = {"iterations": 10, "http_reqs": 12, "data_received": 2048, "data_sent": None, "vus_max": 10}

    html = render_report({}, [], METADATA, totals=totals, checks=checks)

    assert "9/10" in html
    assert "Total: 9/10 checks passed (90.00%)" in html
    assert "2KB" in html
    assert f"{NOT_AVAILABLE}KB" in html


def test_check_names_are_html_escaped():
    """Test that markup in a check name is escaped, not injected."""
    checks = {"<script>alert(1)</script>": CheckTally(1, 0)}

    html = render_report({}, [], METADATA, checks=checks)

    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html


def test_stage_metadata_is_rendered():
    """Test that the stage lines and generation time appear."""
    html = render_report({}, [], METADATA)

    assert "<strong>Ramp-up:</strong> 0 to 10 VUs over 5s" in html
    assert "Total duration: 5s" in html
    assert "2024-01-02 03:04:05" in html


def test_format_number():
    """Test numeric formatting and the placeholder for None."""
    assert format_number(None) == NOT_AVAILABLE
    assert format_number(3.14159) == "3.14"
    assert format_number(1536 / 1024, 0) == "2"
    assert format_number(95, unit="ms") == "95.00ms"
    assert format_number(None, unit="ms") == NOT_AVAILABLE


def test_collect_totals_leaves_absent_counters_empty():
    """Test that unrecorded counters stay None rather than a stale default."""
    series = MetricSeries()
    series.add("http_reqs", 1)
    series.add("vus", 3)
    series.add("vus", 7)

    totals = collect_totals(series)

    assert totals["http_reqs"] == 1
    assert totals["iterations"] is None
    assert totals["vus_max"] == 7


def test_build_report_derives_verdicts_from_options(default_options):
    """Test that verdicts come from the declared thresholds."""
    series = MetricSeries()
    for value in (100.0, 200.0, 2500.0):
        series.add("http_req_duration", value)
    record_check(series, "Lesson status 201", True)

    html = build_report(series, default_options)

    assert "http_req_duration p(95) &lt; 2000ms" in html
    assert '<span class="badge failed">2500.00</span>' in html
    assert "Ramp-down" in html


def test_write_report_returns_absolute_path(tmp_path, monkeypatch):
    """Test that the report is written and its absolute path returned."""
    monkeypatch.chdir(tmp_path)

    path = write_report("<html></html>", "out/report.html")

    assert path.is_absolute()
    assert path == tmp_path.resolve() / "out" / "report.html"
    assert path.read_text(encoding="utf-8") == "<html></html>"
