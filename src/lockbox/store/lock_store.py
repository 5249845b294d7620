"""SQL-backed lock store with atomic insert-if-absent semantics."""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any, NoReturn

from sqlalchemy import Engine, create_engine, delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lockbox.exceptions import LockStoreError
from lockbox.store.models import Base, CacheLock

# SQLSTATE reported by PostgreSQL for a unique or primary key violation
UNIQUE_VIOLATION_SQLSTATE = "23505"


class InsertResult(Enum):
    """Outcome of an insert-if-absent attempt."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


def _as_utc(value: datetime) -> datetime:
    """Normalise a timestamp to aware UTC.

    SQLite stores timestamps without tzinfo, so values are converted to UTC
    before binding and naive values read back are taken as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_unique_violation(error: IntegrityError) -> bool:
    """Tell a duplicate-key rejection apart from other integrity errors."""
    original = error.orig
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    message = str(original).lower()
    return "unique constraint failed" in message or "duplicate" in message


class LockStore:
    """Keyed lock rows in the ``cache_locks`` table.

    Every operation is a single statement in its own transaction. Mutual
    exclusion comes from the database rejecting a second row with the same
    primary key, never from read-then-write logic in Python.
    """

    def __init__(self, engine: Engine, logger: logging.Logger) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine pointing at the shared database
            logger: Logger instance for logging operations

        """
        self.engine = engine
        self.logger = logger

    @classmethod
    def from_url(
        cls,
        database_url: str,
        logger: logging.Logger,
        **engine_kwargs: Any,
    ) -> "LockStore":
        """Create a store from a SQLAlchemy database URL."""
        try:
            engine = create_engine(database_url, **engine_kwargs)
        except (SQLAlchemyError, ValueError) as e:
            error_msg = f"Failed to create database engine: {e}"
            raise LockStoreError(error_msg, original_error=e) from e
        return cls(engine, logger)

    def create_schema(self) -> None:
        """Create the lock table if it does not exist yet."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            error_msg = f"Failed to create lock table: {e}"
            self.logger.exception(error_msg)
            raise LockStoreError(error_msg, original_error=e) from e
        self.logger.debug("Lock table is present.")

    def insert(
        self,
        lock_key: str,
        expires_at: datetime,
        holder_id: str,
    ) -> InsertResult:
        """Insert a lock row unless one already exists for the key.

        Raises:
            LockStoreError: For any failure other than a duplicate key

        """
        statement = insert(CacheLock).values(
            lock_key=lock_key,
            expires_at=_as_utc(expires_at),
            holder_id=holder_id,
        )
        try:
            with self.engine.begin() as connection:
                connection.execute(statement)
        except IntegrityError as e:
            if is_unique_violation(e):
                return InsertResult.ALREADY_EXISTS
            self._raise_store_error("insert", lock_key, e)
        except SQLAlchemyError as e:
            self._raise_store_error("insert", lock_key, e)
        return InsertResult.CREATED

    def lookup(self, lock_key: str) -> datetime | None:
        """Return the expiry of the lock row for ``lock_key``, if any."""
        statement = select(CacheLock.expires_at).where(CacheLock.lock_key == lock_key)
        try:
            with self.engine.connect() as connection:
                expires_at = connection.execute(statement).scalar_one_or_none()
        except SQLAlchemyError as e:
            self._raise_store_error("lookup", lock_key, e)
        if expires_at is None:
            return None
        return _as_utc(expires_at)

    def delete(self, lock_key: str) -> None:
        """Delete the lock row for ``lock_key``. Absent keys are not an error."""
        statement = delete(CacheLock).where(CacheLock.lock_key == lock_key)
        try:
            with self.engine.begin() as connection:
                connection.execute(statement)
        except SQLAlchemyError as e:
            self._raise_store_error("delete", lock_key, e)

    def delete_if_expired(self, lock_key: str, now: datetime) -> bool:
        """Delete the row for ``lock_key`` only if it expired at or before ``now``.

        Returns:
            True if an expired row was removed

        """
        statement = delete(CacheLock).where(
            CacheLock.lock_key == lock_key,
            CacheLock.expires_at <= _as_utc(now),
        )
        try:
            with self.engine.begin() as connection:
                result = connection.execute(statement)
        except SQLAlchemyError as e:
            self._raise_store_error("delete expired", lock_key, e)
        return result.rowcount > 0

    def delete_expired(self, now: datetime) -> int:
        """Delete every row with ``expires_at < now`` and return the count."""
        statement = delete(CacheLock).where(CacheLock.expires_at < _as_utc(now))
        try:
            with self.engine.begin() as connection:
                result = connection.execute(statement)
        except SQLAlchemyError as e:
            error_msg = f"Failed to delete expired locks: {e}"
            self.logger.error(error_msg)
            raise LockStoreError(error_msg, original_error=e) from e
        return max(result.rowcount, 0)

    def _raise_store_error(
        self,
        action: str,
        lock_key: str,
        error: SQLAlchemyError,
    ) -> NoReturn:
        error_msg = f"Lock store {action} failed for '{lock_key}': {error}"
        self.logger.error(error_msg)
        raise LockStoreError(error_msg, original_error=error) from error
