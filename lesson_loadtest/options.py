"""
Run options: schedule, thresholds and think time.

Options live in a small YAML file so that the same declaration drives
the Locust shape, the end-of-run threshold check, the CI gate and the
HTML report.  The packaged default is :file:`data/options.yml`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from lesson_loadtest.schedule import StageSchedule, parse_duration
from lesson_loadtest.thresholds import Threshold, thresholds_from_config, thresholds_to_config

DEFAULT_THINK_TIME = 1.0


@dataclass(frozen=True)
class RunOptions:
    """Everything a run needs to know besides the target URL and fixtures."""

    schedule: StageSchedule
    thresholds: list[Threshold] = field(default_factory=list)
    think_time: float = DEFAULT_THINK_TIME

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunOptions":
        """
        Build options from a parsed YAML document.

        Raises:
            ValueError: If ``stages`` is missing or any entry is malformed.
        """
        if not isinstance(data, dict) or "stages" not in data:
            raise ValueError("Options file must define a 'stages' list")

        return cls(
            schedule=StageSchedule.from_config(data["stages"]),
            thresholds=thresholds_from_config(data.get("thresholds")),
            think_time=parse_duration(data.get("think_time", DEFAULT_THINK_TIME)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stages": self.schedule.to_config(),
            "thresholds": thresholds_to_config(self.thresholds),
            "think_time": self.think_time,
        }


def load_options(path: Path) -> RunOptions:
    """
    Read run options from a YAML file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the document is not valid options.
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Options file {path} is not valid YAML") from exc
    return RunOptions.from_dict(data)
