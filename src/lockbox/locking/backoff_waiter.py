"""Waiting for a contended lock with exponential backoff."""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from datetime import datetime

from lockbox.config import LockConfig
from lockbox.locking.lock_manager import validate_lock_key
from lockbox.store import LockStore
from lockbox.utils import utc_now


def backoff_schedule(
    initial_wait_ms: int,
    max_wait_ms: int,
    max_attempts: int,
) -> Iterator[int]:
    """Yield the sleep before each poll, in milliseconds.

    The first wait is ``initial_wait_ms``; each following one doubles, capped
    at ``max_wait_ms``. Exactly ``max_attempts`` values are produced.
    """
    wait_ms = initial_wait_ms
    for _ in range(max_attempts):
        yield wait_ms
        wait_ms = min(wait_ms * 2, max_wait_ms)


class BackoffWaiter:
    """Blocks until a lock is released, has expired, or the budget runs out."""

    def __init__(  # noqa: PLR0913
        self,
        store: LockStore,
        config: LockConfig,
        logger: logging.Logger,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the waiter.

        Args:
            store: Shared lock store
            config: Backoff settings
            logger: Logger instance for logging operations
            clock: Returns the current aware UTC time
            sleep: Sleeps for the given number of seconds

        """
        self.store = store
        self.config = config
        self.logger = logger
        self.clock = clock
        self.sleep = sleep

    def schedule(self) -> list[int]:
        """Return the configured wait intervals in milliseconds."""
        return list(
            backoff_schedule(
                self.config.initial_wait_ms,
                self.config.max_wait_ms,
                self.config.max_attempts,
            ),
        )

    def wait_for_lock_release(
        self,
        lock_key: str,
        cancel_event: threading.Event | None = None,
    ) -> bool:
        """Poll until ``lock_key`` is free.

        Args:
            lock_key: Identifier of the protected resource
            cancel_event: Optional event; once set, waiting stops

        Returns:
            True if the lock was released or expired, False on timeout or cancel

        Raises:
            LockStoreError: If the store cannot be reached

        """
        validate_lock_key(lock_key)

        for attempt, wait_ms in enumerate(self.schedule(), start=1):
            if self._pause(wait_ms / 1000, cancel_event):
                self.logger.info(f"Stopped waiting for lock '{lock_key}': cancelled.")
                return False

            expires_at = self.store.lookup(lock_key)
            if expires_at is None:
                self.logger.info(
                    f"Lock '{lock_key}' released (attempt {attempt}).",
                )
                return True

            now = self.clock()
            if expires_at <= now:
                self.store.delete_if_expired(lock_key, now)
                self.logger.info(
                    f"Lock '{lock_key}' expired at {expires_at.isoformat()} "
                    f"(attempt {attempt}).",
                )
                return True

            self.logger.debug(
                f"Lock '{lock_key}' still held after attempt {attempt}/"
                f"{self.config.max_attempts}.",
            )

        self.logger.warning(
            f"Gave up waiting for lock '{lock_key}' after "
            f"{self.config.max_attempts} attempts.",
        )
        return False

    def _pause(self, seconds: float, cancel_event: threading.Event | None) -> bool:
        """Sleep; return True if the wait was cancelled."""
        if cancel_event is None:
            self.sleep(seconds)
            return False
        if cancel_event.is_set():
            return True
        return cancel_event.wait(seconds)
