"""Logging channels and request metrics."""
