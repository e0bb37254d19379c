"""Integration tests for the report pipeline and CLIs."""
