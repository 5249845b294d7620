"""Cleanup of expired lock rows, inline or on a schedule."""

import argparse
import logging
import sys
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from lockbox.config import ConfigManager
from lockbox.exceptions import ConfigurationError, LockStoreError
from lockbox.logging import LoggingConfig, configure_logging
from lockbox.store import LockStore
from lockbox.utils import utc_now


class CleanupSweeper:
    """Deletes lock rows abandoned by crashed or hung holders."""

    def __init__(
        self,
        store: LockStore,
        logger: logging.Logger,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the sweeper.

        Args:
            store: Lock store to clean up
            logger: Logger instance for logging operations
            clock: Returns the current aware UTC time

        """
        self.store = store
        self.logger = logger
        self.clock = clock

    def sweep(self) -> int:
        """Delete every lock that expired before now.

        Returns:
            Number of deleted lock rows

        Raises:
            LockStoreError: If the store cannot be reached

        """
        deleted = self.store.delete_expired(self.clock())
        if deleted:
            self.logger.info(f"Cleaned up {deleted} expired lock(s).")
        else:
            self.logger.debug("No expired locks to clean up.")
        return deleted

    def run_periodic(
        self,
        interval_seconds: float,
        stop_event: threading.Event,
        max_runs: int | None = None,
    ) -> int:
        """Sweep every ``interval_seconds`` until ``stop_event`` is set.

        A failed sweep is logged and the loop keeps going; the next run
        picks up whatever the failed one missed.

        Returns:
            Total number of rows deleted across all runs

        """
        if interval_seconds <= 0:
            error_msg = "interval_seconds must be positive"
            raise ValueError(error_msg)

        self.logger.info(f"Starting periodic lock cleanup every {interval_seconds}s")
        total_deleted = 0
        runs = 0
        while not stop_event.is_set():
            try:
                total_deleted += self.sweep()
            except LockStoreError:
                self.logger.exception("Periodic lock cleanup failed")
            runs += 1
            if max_runs is not None and runs >= max_runs:
                break
            stop_event.wait(interval_seconds)

        self.logger.info(
            f"Periodic lock cleanup stopped after {runs} run(s), "
            f"{total_deleted} lock(s) deleted",
        )
        return total_deleted


def main() -> None:
    """Execute the main entry point for the lock cleanup script."""
    parser = argparse.ArgumentParser(
        description="Delete expired distributed locks",
    )
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to configuration YAML file",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Run continuously, sweeping every INTERVAL seconds (default: sweep once)",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create the lock table before sweeping",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: value from the configuration file)",
    )
    args = parser.parse_args()

    try:
        config = ConfigManager.load_config(Path(args.config))
    except ConfigurationError:
        logger = configure_logging(
            LoggingConfig(log_name="lockbox", log_level=args.log_level or "INFO"),
        )
        logger.exception("Configuration error")
        sys.exit(1)

    logger = configure_logging(
        LoggingConfig(log_name="lockbox", log_level=args.log_level or config.log_level),
    )

    try:
        store = LockStore.from_url(ConfigManager.resolve_database_url(config), logger)
        if args.create_schema:
            store.create_schema()

        sweeper = CleanupSweeper(store, logger)
        if args.interval is None:
            sweeper.sweep()
        else:
            stop_event = threading.Event()
            try:
                sweeper.run_periodic(args.interval, stop_event)
            except KeyboardInterrupt:
                stop_event.set()
                logger.info("Interrupted, stopping lock cleanup")
        sys.exit(0)

    except ConfigurationError:
        logger.exception("Configuration error")
        sys.exit(1)
    except LockStoreError:
        logger.exception("Lock store error")
        sys.exit(1)


if __name__ == "__main__":
    main()
