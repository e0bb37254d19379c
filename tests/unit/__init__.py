"""Unit tests for the harness building blocks."""
