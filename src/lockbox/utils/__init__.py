"""Utility functions for lock operations."""

from .common import milliseconds, new_request_id, utc_now

__all__ = ["milliseconds", "new_request_id", "utc_now"]
