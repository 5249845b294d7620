"""Common exceptions used across the Lockbox library."""


class LockboxError(Exception):
    """Base exception for all Lockbox errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the exception with message and optional original error."""
        super().__init__(message)
        self.original_error = original_error
        self.message = message


class ConfigurationError(LockboxError):
    """Raised when the lock configuration is missing or invalid."""


class LockStoreError(LockboxError):
    """Raised when the backing store fails for a reason other than contention."""


class InvalidLockKeyError(LockboxError, ValueError):
    """Raised when a lock key is empty."""


class LockAlreadyTakenError(LockboxError):
    """Exception raised when a lock is already taken by another caller."""
