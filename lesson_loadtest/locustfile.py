"""
Locust entrypoint for the lesson-creation load test.

This is the file the ``locust`` CLI loads.  It wires the workload from
:mod:`lesson_loadtest.workload` into Locust:

- :class:`StagedShape` drives user counts from the staged schedule in
  the run options file.
- The ``test_start`` listener opens the result log, runs the one-off
  setup phase and keeps the token on the environment for every user.
- :class:`LessonUser` creates one lesson per iteration and then waits
  for the configured think time.
- The ``quitting`` listener evaluates the thresholds and fails the
  process when any is breached.

Usage::

    locust -f lesson_loadtest/locustfile.py --headless
    BASE_URL=http://staging:3000 locust -f lesson_loadtest/locustfile.py --headless
    lesson-loadtest-report --results results.json --output report.html
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import gevent
import requests
from locust import HttpUser, LoadTestShape, constant, events, task
from locust.exception import StopUser

from lesson_loadtest import workload
from lesson_loadtest.config import get_config
from lesson_loadtest.fixtures import LessonPool, load_lessons
from lesson_loadtest.metrics import MetricSeries, Trend
from lesson_loadtest.options import RunOptions, load_options
from lesson_loadtest.results import ResultLogWriter
from lesson_loadtest.thresholds import evaluate
from lesson_loadtest.workload import CHECKOUT_TREND, SetupError, setup

logger = logging.getLogger(__name__)

CONFIG = get_config()

# Loaded once when Locust imports this file; read-only afterwards.
OPTIONS: RunOptions = load_options(CONFIG.OPTIONS_PATH)
LESSONS: LessonPool = load_lessons(CONFIG.LESSONS_PATH)


def http_failed(status: int | None, exception: BaseException | None) -> bool:
    """
    Whether a request counts towards ``http_req_failed``.

    Only the transport outcome matters: a status outside 200-399, or no
    response at all.  Requests marked failed by ``response.failure()``
    because a check did not hold still count as successful here; their
    outcome is recorded under ``checks``.
    """
    if status is None:
        return exception is not None
    return not 200 <= status < 400


@dataclass
class RunState:
    """Per-run recording context kept on the Locust environment."""

    series: MetricSeries
    writer: ResultLogWriter
    trend: Trend
    token: str | None = None

    def on_request(
        self,
        request_type: str,
        name: str,
        response_time: float,
        response_length: int,
        response: Any = None,
        exception: BaseException | None = None,
        **_kwargs: Any,
    ) -> None:
        """Record the built-in HTTP metrics for every request Locust issues."""
        tags = {"method": request_type, "name": name}
        status = getattr(response, "status_code", None)
        if status is not None:
            tags["status"] = str(status)

        self.series.add("http_req_duration", response_time, tags)
        self.series.add("http_reqs", 1, tags)
        self.series.add("http_req_failed", 1 if http_failed(status, exception) else 0, tags)
        self.series.add("data_received", response_length or 0)

        body = getattr(getattr(response, "request", None), "body", None)
        if body:
            self.series.add("data_sent", len(body))


def _start_run(environment: Any) -> RunState:
    writer = ResultLogWriter(CONFIG.RESULTS_PATH)
    series = MetricSeries(sink=writer.write_point)
    state = RunState(series=series, writer=writer, trend=Trend(CHECKOUT_TREND, series))

    environment.events.request.add_listener(state.on_request)
    environment.lesson_run = state
    logger.info("Writing results to %s", CONFIG.RESULTS_PATH.resolve())
    return state


def _stop_run(environment: Any) -> None:
    state: RunState | None = getattr(environment, "lesson_run", None)
    if state is None:
        return
    environment.events.request.remove_listener(state.on_request)
    state.writer.close()
    environment.lesson_run = None


@events.test_start.add_listener
def _on_test_start(environment, **_kwargs):
    """Open the result log and run the setup phase exactly once."""
    _stop_run(environment)
    state = _start_run(environment)
    state.series.add("vus_max", OPTIONS.schedule.max_target)

    base_url = environment.host or CONFIG.BASE_URL
    with requests.Session() as session:
        try:
            state.token = setup(
                session,
                base_url,
                series=state.series,
                timeout=CONFIG.REQUEST_TIMEOUT,
            )
        except SetupError as exc:
            logger.error("Setup failed, aborting run: %s", exc)
            environment.process_exit_code = 1
            if environment.runner is not None:
                gevent.spawn(environment.runner.quit)


@events.quitting.add_listener
def _on_quitting(environment, **_kwargs):
    """Check thresholds against the run's samples and close the result log."""
    state: RunState | None = getattr(environment, "lesson_run", None)
    if state is None:
        return

    if state.token is not None:
        verdicts = evaluate(OPTIONS.thresholds, state.series)
        for verdict in verdicts:
            observed = "N/A" if verdict.observed is None else f"{verdict.observed:.2f}"
            logger.info(
                "Threshold %s: %s (observed %s)",
                verdict.label,
                "PASS" if verdict.passed else "FAIL",
                observed,
            )
        if not all(verdict.passed for verdict in verdicts):
            environment.process_exit_code = 1

    _stop_run(environment)


class LessonUser(HttpUser):
    """
    Virtual user creating lessons with the shared instructor token.

    The token is established once by the setup phase; a user that
    starts without one stops immediately so no iteration runs
    unauthenticated.
    """

    host = CONFIG.BASE_URL
    wait_time = constant(OPTIONS.think_time)

    def on_start(self) -> None:
        state: RunState | None = getattr(self.environment, "lesson_run", None)
        if state is None or state.token is None:
            raise StopUser("No token from setup phase")

    @task
    def create_lesson(self) -> None:
        state: RunState = self.environment.lesson_run
        started = time.perf_counter()

        workload.create_lesson(self.client, state.token, LESSONS.pick(), state.trend, state.series)

        state.series.add("iteration_duration", (time.perf_counter() - started) * 1000)
        state.series.add("iterations", 1)
        if self.environment.runner is not None:
            state.series.add("vus", self.environment.runner.user_count)


class StagedShape(LoadTestShape):
    """Ramp users through the stages declared in the run options."""

    schedule = OPTIONS.schedule

    def tick(self):
        return self.schedule.target_at(self.get_run_time())
