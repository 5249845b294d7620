"""Run expensive per-key work so that only one caller does it at a time."""

import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from lockbox.locking import BackoffWaiter, LockManager
from lockbox.utils import new_request_id

T = TypeVar("T")

CRAWL_KEY_PREFIX = "crawl"


def crawl_lock_key(name: str) -> str:
    """Build the lock key used for crawling an external entity by name."""
    normalized = re.sub(r"\s+", " ", name.strip().lower())
    if not normalized:
        error_msg = "Entity name cannot be empty"
        raise ValueError(error_msg)
    return f"{CRAWL_KEY_PREFIX}:{normalized}"


class RunStatus(Enum):
    """How a guarded run ended."""

    EXECUTED = "executed"
    REUSED = "reused"
    SKIPPED = "skipped"


@dataclass
class RunResult(Generic[T]):
    """Result of a guarded run."""

    status: RunStatus
    value: T | None = None


class ExclusiveRunner:
    """Brackets a critical section with acquire, wait and release."""

    def __init__(
        self,
        manager: LockManager,
        waiter: BackoffWaiter,
        logger: logging.Logger,
    ) -> None:
        """Initialize the runner.

        Args:
            manager: Lock manager used to take and release the lock
            waiter: Waiter used when another caller holds the lock
            logger: Logger instance for logging operations

        """
        self.manager = manager
        self.waiter = waiter
        self.logger = logger

    def run(
        self,
        lock_key: str,
        work: Callable[[], T],
        reuse: Callable[[], T | None] | None = None,
        request_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> RunResult[T]:
        """Run ``work`` under the lock, or reuse another caller's result.

        Args:
            lock_key: Identifier of the protected resource
            work: The expensive operation; runs only while holding the lock
            reuse: Reads the result another caller produced, or returns None
            request_id: Diagnostic identifier stored with the lock row
            cancel_event: Optional event that stops waiting early

        Returns:
            RunResult with status EXECUTED, REUSED or SKIPPED

        Raises:
            LockStoreError: If the store fails
            Exception: Anything raised by ``work``, after the lock is released

        """
        request_id = request_id or new_request_id()

        if self.manager.acquire(lock_key, request_id):
            try:
                value = work()
            finally:
                self.manager.release(lock_key)
            return RunResult(status=RunStatus.EXECUTED, value=value)

        self.logger.info(
            f"Request {request_id} waiting for '{lock_key}' held by another caller",
        )
        if not self.waiter.wait_for_lock_release(lock_key, cancel_event):
            self.logger.warning(
                f"Request {request_id} skipped '{lock_key}': lock still held",
            )
            return RunResult(status=RunStatus.SKIPPED)

        if reuse is not None:
            value = reuse()
            if value is not None:
                return RunResult(status=RunStatus.REUSED, value=value)

        self.logger.warning(
            f"Request {request_id} skipped '{lock_key}': no result left by the previous holder",
        )
        return RunResult(status=RunStatus.SKIPPED)
