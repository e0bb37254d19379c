"""
Lesson API load-testing harness (Locust-based).

Drives a register instructor -> login -> create lesson flow against the
Music Lesson API under a staged virtual-user schedule, captures every
request and custom trend sample in a JSON-lines result log, and turns
that log into a self-contained HTML report.

Modules:
- :mod:`.schedule` - staged ramp schedule and the Locust shape helper
- :mod:`.thresholds` - latency objectives such as ``p(95)<2000``
- :mod:`.fixtures` - unique credentials and the shared lesson pool
- :mod:`.metrics` - explicit aggregation context and the ``Trend`` recorder
- :mod:`.results` - JSON-lines writer and ingestor
- :mod:`.stats` - nearest-rank summary statistics
- :mod:`.workload` - setup phase and per-iteration transaction
- :mod:`.report` - HTML rendering and the report CLI
"""

from __future__ import annotations

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

__version__ = "1.0.0"
