"""Unit tests for loading run options from YAML."""

from __future__ import annotations

import pytest

from lesson_loadtest.options import RunOptions, load_options
from lesson_loadtest.schedule import Stage

pytestmark = pytest.mark.unit


def test_packaged_options_declare_default_run(default_options):
    """Test the shipped schedule, thresholds and think time."""
    assert default_options.schedule.stages == (
        Stage(duration=5.0, target=10),
        Stage(duration=10.0, target=10),
        Stage(duration=5.0, target=0),
    )
    assert [t.label for t in default_options.thresholds] == [
        "http_req_duration p(95) < 2000ms",
        "http_req_duration p(99) < 3000ms",
        "checkout_duration p(95) < 2000ms",
        "checkout_duration p(99) < 3000ms",
    ]
    assert default_options.think_time == 1.0


def test_options_round_trip_through_dict(default_options):
    """Test that serialising and re-reading options is lossless."""
    assert RunOptions.from_dict(default_options.to_dict()) == default_options


def test_missing_stages_is_rejected(tmp_path):
    """Test that an options file without stages raises ValueError."""
    path = tmp_path / "options.yml"
    path.write_text("thresholds: {}\n", encoding="utf-8")

    with pytest.raises(ValueError, match="stages"):
        load_options(path)


def test_invalid_yaml_is_rejected(tmp_path):
    """Test that a YAML syntax error surfaces as ValueError."""
    path = tmp_path / "options.yml"
    path.write_text("stages: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValueError, match="not valid YAML"):
        load_options(path)


def test_missing_file_raises_oserror(tmp_path):
    """Test that an absent options file is an I/O error."""
    with pytest.raises(OSError):
        load_options(tmp_path / "missing.yml")


def test_think_time_defaults_when_omitted(tmp_path):
    """Test that think_time falls back to one second."""
    path = tmp_path / "options.yml"
    path.write_text("stages:\n  - {duration: 1s, target: 1}\n", encoding="utf-8")

    options = load_options(path)

    assert options.think_time == 1.0
    assert options.thresholds == []
