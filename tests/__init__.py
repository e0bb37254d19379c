"""
Test suite for the lesson load-testing harness.

This package contains:
- unit/: statistics, schedule, thresholds, fixtures, recording and rendering
- integration/: report and threshold CLIs plus the full
  setup -> iteration -> result log -> report pipeline
"""
