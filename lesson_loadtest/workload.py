"""
Workload definition: the setup phase and the per-iteration transaction.

The setup phase runs once per test, before any virtual user starts:
it registers one instructor and logs in to obtain a bearer token.  Any
failure there is fatal, because no iteration can run without a token.

Each iteration then creates one lesson with that token, records the
request duration into the ``checkout_duration`` trend, and evaluates
four checks against the echoed lesson.  Failed checks are recorded and
mark the Locust request as failed, but the virtual user keeps running.

Both functions take the HTTP client as an argument: a ``requests``
session for setup and Locust's ``HttpSession`` for iterations.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from lesson_loadtest.fixtures import Credentials, LessonFixture, unique_credentials
from lesson_loadtest.metrics import MetricSeries, Trend, record_check

logger = logging.getLogger(__name__)

CHECKOUT_TREND = "checkout_duration"

JSON_HEADERS = {"Content-Type": "application/json"}


class SetupError(RuntimeError):
    """Registration or login failed, so the run cannot proceed."""


def _safe_json(response: Any) -> dict[str, Any]:
    """Return response JSON as a dict, or ``{}`` if parsing fails."""
    try:
        data = response.json()
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data
    return {}


def status_text(response: Any) -> str:
    """Status line text such as ``"201 Created"``."""
    reason = getattr(response, "reason", None) or ""
    return f"{response.status_code} {reason}".strip()


def auth_header(token: str) -> dict[str, str]:
    """Bearer auth headers for JSON requests."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def _record(series: MetricSeries | None, name: str, passed: bool) -> bool:
    if series is not None:
        record_check(series, name, passed)
    return passed


def setup(
    session: requests.Session,
    base_url: str,
    credentials: Credentials | None = None,
    series: MetricSeries | None = None,
    timeout: float = 10.0,
) -> str:
    """
    Register an instructor and log in, returning the bearer token.

    Args:
        session: HTTP session used for both calls.
        base_url: Root URL of the lesson API.
        credentials: Identity to register; a unique one is generated
            when omitted.
        series: Where to record the setup checks, if anywhere.
        timeout: Seconds to wait for each call.

    Returns:
        The token from the login response.

    Raises:
        SetupError: If registration does not return ``201``, login does
            not return ``200``, the token is missing or empty, or either
            call fails at the transport level.
    """
    credentials = credentials or unique_credentials()
    base_url = base_url.rstrip("/")

    try:
        response = session.post(
            f"{base_url}/instructors/register",
            json={
                "name": credentials.name,
                "email": credentials.email,
                "password": credentials.password,
            },
            headers=JSON_HEADERS,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        _record(series, "Register status 201", False)
        raise SetupError(f"Instructor registration request failed: {exc}") from exc

    if not _record(series, "Register status 201", response.status_code == 201):
        raise SetupError(f"Instructor registration expected 201, got {response.status_code}")
    logger.info("Registered instructor %s", credentials.email)

    try:
        response = session.post(
            f"{base_url}/instructors/login",
            json={"email": credentials.email, "password": credentials.password},
            headers=JSON_HEADERS,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        _record(series, "login 200", False)
        raise SetupError(f"Instructor login request failed: {exc}") from exc

    login_ok = _record(series, "login 200", response.status_code == 200)
    token = _safe_json(response).get("token")
    has_token = _record(series, "has token", isinstance(token, str) and bool(token))

    if not login_ok:
        raise SetupError(f"Instructor login expected 200, got {response.status_code}")
    if not has_token:
        raise SetupError("Instructor login response missing token")

    logger.info("Instructor %s logged in", credentials.email)
    return token


def lesson_checks(response: Any, lesson: LessonFixture) -> dict[str, bool]:
    """Evaluate the lesson-creation checks against *response*."""
    body = _safe_json(response)
    return {
        "Lesson status 201": response.status_code == 201,
        "Lesson title correct": body.get("title") == lesson.title,
        "Lesson description correct": body.get("description") == lesson.description,
        "status text is 201 Created": status_text(response) == "201 Created",
    }


def create_lesson(
    client: Any,
    token: str,
    lesson: LessonFixture,
    trend: Trend,
    series: MetricSeries,
) -> dict[str, bool]:
    """
    Create one lesson and validate the echoed fields.

    Args:
        client: Locust ``HttpSession`` (anything whose ``post`` supports
            ``catch_response=True``).
        token: Bearer token from :func:`setup`.
        lesson: Fixture whose title and description are sent.
        trend: Trend receiving the request duration.
        series: Where the check outcomes are recorded.

    Returns:
        Check name mapped to whether it passed.
    """
    with client.post(
        "/lessons",
        json=lesson.as_payload(),
        headers=auth_header(token),
        name="/lessons [POST]",
        catch_response=True,
    ) as response:
        trend.record(response)
        results = lesson_checks(response, lesson)
        for name, passed in results.items():
            record_check(series, name, passed)

        failed = [name for name, passed in results.items() if not passed]
        if failed:
            response.failure("Failed checks: " + ", ".join(failed))
        else:
            response.success()

    return results
