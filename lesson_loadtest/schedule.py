"""
Staged virtual-user schedule.

A run is described as an ordered list of stages, each one a time window
with a target concurrency that the scheduler ramps toward.  The first
stage starts from zero users and every later stage starts from the
previous stage's target, so a typical run reads::

    stages:
      - {duration: 5s, target: 10}    # ramp-up
      - {duration: 10s, target: 10}   # steady state
      - {duration: 5s, target: 0}     # ramp-down

:class:`StageSchedule` turns that declaration into the
``(user_count, spawn_rate)`` pairs Locust's ``LoadTestShape.tick``
expects, and back into the same declaration for reports.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")

_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str | int | float) -> float:
    """
    Convert a duration such as ``"5s"``, ``"1m30s"`` or ``"250ms"`` to seconds.

    Bare numbers are taken as seconds.

    Raises:
        ValueError: If the value is negative or not a recognised duration.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration must be non-negative: {value!r}")
        return float(value)

    text = str(value).strip()
    if not text:
        raise ValueError("Duration must not be empty")

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return total


def format_duration(seconds: float) -> str:
    """Render *seconds* in the compact ``1h2m3s`` form accepted by :func:`parse_duration`."""
    total_ms = int(round(seconds * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs:
        parts.append(f"{secs}s")
    if millis:
        parts.append(f"{millis}ms")
    return "".join(parts) or "0s"


@dataclass(frozen=True)
class Stage:
    """One ramp window: reach ``target`` users over ``duration`` seconds."""

    duration: float
    target: int

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"Stage duration must be non-negative, got {self.duration}")
        if self.target < 0:
            raise ValueError(f"Stage target must be non-negative, got {self.target}")

    @classmethod
    def from_config(cls, data: dict[str, Any]) -> "Stage":
        """Build a stage from a ``{"duration": ..., "target": ...}`` mapping."""
        try:
            duration = parse_duration(data["duration"])
            target = int(data["target"])
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Stage must define duration and target: {data!r}") from exc
        return cls(duration=duration, target=target)

    def to_config(self) -> dict[str, Any]:
        return {"duration": format_duration(self.duration), "target": self.target}


class StageSchedule:
    """
    Ordered sequence of :class:`Stage` objects.

    The schedule is immutable once built; it is loaded at run start and
    shared between the Locust shape and the report.
    """

    def __init__(self, stages: Iterable[Stage]):
        self._stages = tuple(stages)

    @classmethod
    def from_config(cls, data: list[dict[str, Any]]) -> "StageSchedule":
        if not isinstance(data, list):
            raise ValueError("stages must be a list of {duration, target} mappings")
        return cls(Stage.from_config(item) for item in data)

    def to_config(self) -> list[dict[str, Any]]:
        return [stage.to_config() for stage in self._stages]

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    @property
    def total_duration(self) -> float:
        return sum(stage.duration for stage in self._stages)

    @property
    def max_target(self) -> int:
        return max((stage.target for stage in self._stages), default=0)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StageSchedule):
            return NotImplemented
        return self._stages == other._stages

    def __repr__(self) -> str:
        return f"StageSchedule({list(self._stages)!r})"

    def target_at(self, elapsed: float) -> tuple[int, float] | None:
        """
        Return the ``(user_count, spawn_rate)`` wanted *elapsed* seconds into the run.

        Concurrency moves linearly from the previous stage's target to
        the current one.  ``None`` means the schedule is finished, which
        is how a Locust shape signals the end of the test.
        """
        stage_start = 0.0
        start_users = 0
        for stage in self._stages:
            stage_end = stage_start + stage.duration
            if elapsed < stage_end:
                progress = (elapsed - stage_start) / stage.duration
                users = round(start_users + (stage.target - start_users) * progress)
                spawn_rate = max(1.0, abs(stage.target - start_users) / stage.duration)
                return users, spawn_rate
            stage_start = stage_end
            start_users = stage.target
        return None

    def describe(self) -> list[tuple[str, str]]:
        """Human-readable ``(label, text)`` lines, one per stage."""
        lines = []
        start_users = 0
        for stage in self._stages:
            duration = format_duration(stage.duration)
            if stage.target > start_users:
                lines.append(("Ramp-up", f"{start_users} to {stage.target} VUs over {duration}"))
            elif stage.target < start_users:
                lines.append(("Ramp-down", f"{start_users} to {stage.target} VUs over {duration}"))
            else:
                lines.append(("Steady", f"{stage.target} VUs held for {duration}"))
            start_users = stage.target
        return lines
