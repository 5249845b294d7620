"""Caller-facing helpers for running work under a lock."""

from lockbox.workflow.exclusive_runner import (
    ExclusiveRunner,
    RunResult,
    RunStatus,
    crawl_lock_key,
)

__all__ = ["ExclusiveRunner", "RunResult", "RunStatus", "crawl_lock_key"]
