"""
Load-test harness - Configuration.

Defines environment-specific configuration classes for the harness.
Each class captures where the target API lives and where the run
options, lesson fixtures, result log and HTML report are read from or
written to.  The ``get_config`` factory selects the right class based on
the ``LOADTEST_ENV`` environment variable (or an explicit key).
"""

from __future__ import annotations

import os
from pathlib import Path

# Directory holding the packaged options file and lesson fixtures.
DATA_DIR = Path(__file__).resolve().parent / "data"

DEFAULT_BASE_URL = "http://localhost:3000"


def get_base_url() -> str:
    """Return the target API base URL, honouring a ``BASE_URL`` override."""
    return os.environ.get("BASE_URL") or DEFAULT_BASE_URL


class Config:
    """
    Base (shared) configuration for the harness.

    Values are read from environment variables when the module is
    imported, falling back to the packaged data files and to paths
    relative to the working directory for run artefacts.
    """

    BASE_URL: str = get_base_url()

    OPTIONS_PATH: Path = Path(os.environ.get("LOADTEST_OPTIONS", DATA_DIR / "options.yml"))
    LESSONS_PATH: Path = Path(os.environ.get("LOADTEST_LESSONS", DATA_DIR / "lessons.data.json"))

    RESULTS_PATH: Path = Path(os.environ.get("LOADTEST_RESULTS", "results.json"))
    REPORT_PATH: Path = Path(os.environ.get("LOADTEST_REPORT", "report.html"))

    # Seconds to wait for the one-off register/login calls of the setup phase.
    REQUEST_TIMEOUT: float = float(os.environ.get("LOADTEST_REQUEST_TIMEOUT", "10"))


class DevelopmentConfig(Config):
    """Local runs against a developer's API instance."""


class TestingConfig(Config):
    """
    Test-suite overrides.

    Points the harness at a non-routable host so that unit tests never
    accidentally hit a real API, with a short setup timeout.
    """

    BASE_URL: str = os.environ.get("TEST_BASE_URL", "http://lessons.test")
    REQUEST_TIMEOUT: float = 1.0


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the configuration class for the given environment.

    Args:
        env: ``"development"`` or ``"testing"``.  When *None*, the
            ``LOADTEST_ENV`` environment variable is consulted, falling
            back to ``"development"`` if unset.

    Returns:
        The ``Config`` subclass matching the requested environment,
        or ``DevelopmentConfig`` if the key is unrecognised.
    """
    if env is None:
        env = os.environ.get("LOADTEST_ENV", "development")
    return config.get(env, config["default"])
