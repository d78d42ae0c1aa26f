"""Workout buddy matching engine: candidate discovery and match requests."""

__version__ = "0.1.0"
