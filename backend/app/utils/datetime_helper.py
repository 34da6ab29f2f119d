"""Utility functions for datetime operations."""

from datetime import datetime, UTC


def utc_now():
    """Return the current UTC datetime in a timezone-aware format."""
    return datetime.now(UTC)


def epoch_millis(dt=None) -> int:
    """Milliseconds since the Unix epoch, used to build storage object keys."""
    dt = dt or utc_now()
    return int(dt.timestamp() * 1000)
