"""Lock management functionality for concurrent operations."""

from lockbox.exceptions import LockAlreadyTakenError

from .backoff_waiter import BackoffWaiter, backoff_schedule
from .lock_manager import LockManager, validate_lock_key

__all__ = [
    "BackoffWaiter",
    "LockAlreadyTakenError",
    "LockManager",
    "backoff_schedule",
    "validate_lock_key",
]
