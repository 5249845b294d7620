"""Lock management functionality for concurrent operations."""

import logging
import random
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from lockbox.config import LockConfig
from lockbox.exceptions import InvalidLockKeyError, LockAlreadyTakenError, LockStoreError
from lockbox.store import InsertResult, LockStore
from lockbox.sweeper import CleanupSweeper
from lockbox.utils import milliseconds, new_request_id, utc_now


def validate_lock_key(lock_key: str) -> None:
    """Reject empty or blank lock keys."""
    if not lock_key or not lock_key.strip():
        error_msg = "lock_key cannot be empty"
        raise InvalidLockKeyError(error_msg)


class LockManager:
    """Manages TTL-bound locks shared through a lock store."""

    def __init__(  # noqa: PLR0913
        self,
        store: LockStore,
        config: LockConfig,
        logger: logging.Logger,
        sweeper: CleanupSweeper | None = None,
        clock: Callable[[], datetime] = utc_now,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the LockManager.

        Args:
            store: Shared lock store
            config: Lease and cleanup settings
            logger: Logger instance for logging operations
            sweeper: Optional sweeper used for inline cleanup
            clock: Returns the current aware UTC time
            random_source: Returns a float in [0, 1) for the cleanup draw

        """
        self.store = store
        self.config = config
        self.logger = logger
        self.clock = clock
        self.random_source = random_source
        self.sweeper = sweeper or CleanupSweeper(store, logger, clock=clock)

    def acquire(self, lock_key: str, request_id: str | None = None) -> bool:
        """Try to take the lock for ``lock_key``.

        Args:
            lock_key: Identifier of the protected resource
            request_id: Diagnostic identifier stored with the lock row

        Returns:
            True if this call created the lock, False if a live lock exists

        Raises:
            InvalidLockKeyError: If lock_key is empty
            LockStoreError: If the store fails for any reason but contention

        """
        validate_lock_key(lock_key)
        holder_id = request_id or new_request_id()

        if self.random_source() < self.config.cleanup_probability:
            self._cleanup_inline()

        if self._insert(lock_key, holder_id):
            return True

        # A row that outlived its TTL still occupies the key until someone
        # deletes it. Clear it conditionally and try once more.
        if self.store.delete_if_expired(lock_key, self.clock()):
            self.logger.info(f"Removed expired lock '{lock_key}' before acquiring.")
            if self._insert(lock_key, holder_id):
                return True

        self.logger.info(f"Lock '{lock_key}' is held by another caller.")
        return False

    def release(self, lock_key: str) -> None:
        """Release the lock for ``lock_key``.

        Release is cooperative: the holder is not checked, and releasing an
        absent key is a no-op.
        """
        validate_lock_key(lock_key)
        self.store.delete(lock_key)
        self.logger.debug(f"Lock '{lock_key}' released.")

    def is_locked(self, lock_key: str) -> bool:
        """Return True if a live lock exists for ``lock_key``.

        An expired row found here is deleted on the spot.
        """
        validate_lock_key(lock_key)
        expires_at = self.store.lookup(lock_key)
        if expires_at is None:
            return False

        now = self.clock()
        if expires_at <= now:
            self.store.delete_if_expired(lock_key, now)
            self.logger.info(f"Lock '{lock_key}' expired at {expires_at.isoformat()}.")
            return False
        return True

    def cleanup_expired_locks(self) -> int:
        """Delete all expired locks and return how many were removed."""
        return self.sweeper.sweep()

    @contextmanager
    def lock(self, lock_key: str, request_id: str | None = None) -> Iterator[str]:
        """Hold ``lock_key`` for the duration of a ``with`` block.

        Yields:
            The lock key

        Raises:
            LockAlreadyTakenError: If another caller holds the lock

        """
        if not self.acquire(lock_key, request_id):
            error_msg = f"Lock '{lock_key}' is already taken."
            raise LockAlreadyTakenError(error_msg)
        try:
            yield lock_key
        finally:
            self.release(lock_key)

    def _insert(self, lock_key: str, holder_id: str) -> bool:
        expires_at = self.clock() + milliseconds(self.config.ttl_ms)
        result = self.store.insert(lock_key, expires_at, holder_id)
        if result is InsertResult.CREATED:
            self.logger.info(
                f"Lock '{lock_key}' acquired by {holder_id} until {expires_at.isoformat()}.",
            )
            return True
        return False

    def _cleanup_inline(self) -> None:
        try:
            self.sweeper.sweep()
        except LockStoreError:
            self.logger.exception("Inline lock cleanup failed")
