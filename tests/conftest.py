"""
Shared pytest fixtures for the load-testing harness.

No test talks to a real API or starts Locust.  HTTP calls go through
small fake clients that return pre-baked responses, and every file the
harness reads or writes lives under ``tmp_path``.

Key Concepts Demonstrated:
- Fake objects that satisfy the ``requests`` / Locust response interface
- Factory fixtures for JSON-lines result logs
- Faker-generated lesson data
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import locust  # noqa: F401  gevent monkey-patching must precede requests/ssl imports
import pytest
from faker import Faker

os.environ["LOADTEST_ENV"] = "testing"

from lesson_loadtest.config import DATA_DIR
from lesson_loadtest.fixtures import LessonFixture
from lesson_loadtest.metrics import MetricSeries
from lesson_loadtest.options import load_options

fake = Faker()


class FakeResponse:
    """
    Stand-in for a ``requests.Response`` and Locust's ``ResponseContextManager``.

    Records whether ``success()`` or ``failure()`` was called so tests
    can assert how the workload classified the request.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        reason: str = "OK",
        response_time: float | None = 12.5,
    ):
        self.status_code = status_code
        self.reason = reason
        self._body = body
        self.request_meta = {"response_time": response_time} if response_time is not None else {}
        self.outcome: str | None = None

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("Response has no JSON body")
        return self._body

    def success(self) -> None:
        self.outcome = "success"

    def failure(self, message: str) -> None:
        self.outcome = message

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        return False


class FakeClient:
    """Returns queued responses from ``post`` and remembers every call."""

    def __init__(self, *responses: FakeResponse):
        self._responses = list(responses)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        return self._responses.pop(0)


@pytest.fixture
def series():
    """A fresh, empty aggregation context."""
    return MetricSeries()


@pytest.fixture
def lesson():
    """A lesson with Faker-generated title and description."""
    return LessonFixture(title=fake.sentence(nb_words=4), description=fake.paragraph())


@pytest.fixture
def default_options():
    """The run options shipped with the package."""
    return load_options(DATA_DIR / "options.yml")


@pytest.fixture
def write_log(tmp_path):
    """
    Factory fixture writing a JSON-lines result log.

    Accepts dicts (serialised as JSON) and raw strings (written as-is,
    for malformed-line cases).

    Example:
        def test_something(write_log):
            path = write_log({"type": "Point", ...}, "not json")
    """

    def _write(*lines: dict[str, Any] | str, name: str = "results.json") -> Path:
        path = tmp_path / name
        rendered = [line if isinstance(line, str) else json.dumps(line) for line in lines]
        path.write_text("\n".join(rendered) + "\n", encoding="utf-8")
        return path

    return _write


def point(metric: str, value: Any, **tags: str) -> dict[str, Any]:
    """Build a ``Point`` record as the result log stores it."""
    return {"type": "Point", "metric": metric, "data": {"value": value, "tags": tags}}
