"""Shared fixtures for Lockbox tests."""

import logging
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import pytest

from lockbox.config import LockConfig
from lockbox.store import LockStore

START_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock; ``sleep`` moves time forward instead of blocking."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.start = start
        self.elapsed_ms = 0
        self.sleeps_ms: list[int] = []
        self._scheduled: list[tuple[int, Callable[[], None]]] = []

    def __call__(self) -> datetime:
        return self.start + timedelta(milliseconds=self.elapsed_ms)

    def at(self, elapsed_ms: int, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the clock reaches ``elapsed_ms``."""
        self._scheduled.append((elapsed_ms, callback))

    def advance(self, milliseconds: int) -> None:
        self.elapsed_ms += milliseconds
        due = [item for item in self._scheduled if item[0] <= self.elapsed_ms]
        for item in due:
            self._scheduled.remove(item)
            item[1]()

    def sleep(self, seconds: float) -> None:
        milliseconds = round(seconds * 1000)
        self.sleeps_ms.append(milliseconds)
        self.advance(milliseconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger() -> Mock:
    return Mock(spec=logging.Logger)


@pytest.fixture
def config() -> LockConfig:
    # Inline cleanup off unless a test turns it on
    return LockConfig(
        ttl_ms=30_000,
        initial_wait_ms=500,
        max_wait_ms=3_000,
        max_attempts=5,
        cleanup_probability=0.0,
    )


@pytest.fixture
def store(tmp_path: Path, logger: Mock) -> Iterator[LockStore]:
    lock_store = LockStore.from_url(
        f"sqlite:///{tmp_path / 'locks.db'}",
        logger,
        connect_args={"timeout": 30},
    )
    lock_store.create_schema()
    yield lock_store
    lock_store.engine.dispose()
