"""
Validate a JSON-lines result log against the run's thresholds.

After a load test completes, CI invokes this script to decide whether
the build passes or fails.  It ingests the result log, evaluates every
threshold declared in the run options file (for example
``checkout_duration: ["p(95)<2000"]``) and prints a table of observed
values against their limits.

Exit codes follow a three-state convention so that CI can distinguish
"thresholds breached" from "script crashed":

- ``0`` - all thresholds passed
- ``1`` - at least one threshold was breached
- ``2`` - the script itself failed (missing file, bad YAML, etc.)
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from lesson_loadtest.config import get_config
from lesson_loadtest.options import load_options
from lesson_loadtest.results import ingest
from lesson_loadtest.thresholds import ThresholdVerdict, evaluate

EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SCRIPT_ERROR = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the threshold checker."""
    config = get_config()
    parser = argparse.ArgumentParser(
        description="Check a load-test result log against performance thresholds."
    )
    parser.add_argument(
        "--results",
        type=Path,
        default=config.RESULTS_PATH,
        help="Path to the JSON-lines result log",
    )
    parser.add_argument(
        "--options",
        type=Path,
        default=config.OPTIONS_PATH,
        help="Run options YAML holding the thresholds",
    )
    return parser.parse_args(argv)


def _print_summary(verdicts: Sequence[ThresholdVerdict], passed: bool) -> None:
    """Print a human-readable results table to stdout for CI logs."""
    print("Performance Threshold Check")
    print("-" * 72)
    print(f"{'Threshold':<46}{'Actual':>14}{'Status':>12}")
    print("-" * 72)
    for verdict in verdicts:
        actual = "N/A" if verdict.observed is None else f"{verdict.observed:.2f}"
        status = "PASS" if verdict.passed else "FAIL"
        print(f"{verdict.label:<46}{actual:>14}{status:>12}")
    print("-" * 72)
    print(f"Overall: {'PASS' if passed else 'FAIL'}")


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point: load thresholds, ingest the log, compare, and print results.

    Returns:
        ``EXIT_PASS`` (0) if all thresholds are met,
        ``EXIT_THRESHOLD_BREACH`` (1) if any are exceeded, or
        ``EXIT_SCRIPT_ERROR`` (2) if the inputs could not be read.
    """
    args = parse_args(argv)

    try:
        options = load_options(args.options)
        series = ingest(args.results)
    except (OSError, ValueError) as exc:
        print(f"Threshold check failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    if not options.thresholds:
        print("Threshold check failed: no thresholds declared", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    verdicts = evaluate(options.thresholds, series)
    passed = all(verdict.passed for verdict in verdicts)
    _print_summary(verdicts, passed)
    return EXIT_PASS if passed else EXIT_THRESHOLD_BREACH


if __name__ == "__main__":
    raise SystemExit(main())
