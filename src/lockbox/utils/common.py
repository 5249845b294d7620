"""Common utility functions for lock operations."""

import uuid
from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def milliseconds(value: int) -> timedelta:
    """Convert a millisecond setting into a timedelta."""
    return timedelta(milliseconds=value)


def new_request_id() -> str:
    """Generate an opaque holder identifier for a lock row."""
    return uuid.uuid4().hex
