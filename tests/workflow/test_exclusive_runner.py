"""Tests for running work under a lock."""

import threading
from unittest.mock import Mock

import pytest

from lockbox.exceptions import LockStoreError
from lockbox.locking import BackoffWaiter, LockManager
from lockbox.workflow import ExclusiveRunner, RunStatus, crawl_lock_key

LOCK_KEY = "crawl:entity-1"


class TestCrawlLockKey:
    """Test cases for crawl lock key construction."""

    def test_normalizes_name(self) -> None:
        """Test case and whitespace do not produce different keys."""
        assert crawl_lock_key("  Gangnam   Starbucks ") == "crawl:gangnam starbucks"
        assert crawl_lock_key("gangnam starbucks") == crawl_lock_key("GANGNAM STARBUCKS")

    def test_empty_name(self) -> None:
        """Test a blank name is rejected."""
        with pytest.raises(ValueError, match="empty"):
            crawl_lock_key("   ")


class TestExclusiveRunner:
    """Test cases for ExclusiveRunner."""

    def _runner(self, store, config, logger, clock) -> tuple[ExclusiveRunner, LockManager]:
        manager = LockManager(store, config, logger, clock=clock)
        waiter = BackoffWaiter(store, config, logger, clock=clock, sleep=clock.sleep)
        return ExclusiveRunner(manager, waiter, logger), manager

    def test_executes_work_when_lock_is_free(self, store, config, logger, clock) -> None:
        """Test the work runs and the lock is released afterwards."""
        runner, manager = self._runner(store, config, logger, clock)
        work = Mock(return_value="summary")

        result = runner.run(LOCK_KEY, work, request_id="req-1")

        assert result.status is RunStatus.EXECUTED
        assert result.value == "summary"
        work.assert_called_once()
        assert manager.is_locked(LOCK_KEY) is False

    def test_releases_lock_when_work_fails(self, store, config, logger, clock) -> None:
        """Test a failing work function still releases the lock."""
        runner, manager = self._runner(store, config, logger, clock)
        work = Mock(side_effect=RuntimeError("crawl failed"))

        with pytest.raises(RuntimeError, match="crawl failed"):
            runner.run(LOCK_KEY, work)

        assert manager.is_locked(LOCK_KEY) is False

    def test_reuses_result_after_release(self, store, config, logger, clock) -> None:
        """Test a waiting caller reads the result the holder left behind."""
        runner, manager = self._runner(store, config, logger, clock)
        manager.acquire(LOCK_KEY, "holder")
        saved: dict[str, str] = {}

        def finish_holder() -> None:
            saved[LOCK_KEY] = "holder summary"
            manager.release(LOCK_KEY)

        clock.at(1_200, finish_holder)
        work = Mock(return_value="own summary")

        result = runner.run(LOCK_KEY, work, reuse=lambda: saved.get(LOCK_KEY))

        assert result.status is RunStatus.REUSED
        assert result.value == "holder summary"
        work.assert_not_called()

    def test_skips_when_released_without_result(self, store, config, logger, clock) -> None:
        """Test nothing to reuse after the holder gave up."""
        runner, manager = self._runner(store, config, logger, clock)
        manager.acquire(LOCK_KEY, "holder")
        clock.at(600, lambda: manager.release(LOCK_KEY))

        result = runner.run(LOCK_KEY, Mock(), reuse=lambda: None)

        assert result.status is RunStatus.SKIPPED
        assert result.value is None

    def test_skips_on_wait_timeout(self, store, config, logger, clock) -> None:
        """Test a lock held past the wait budget skips the work."""
        runner, manager = self._runner(store, config, logger, clock)
        manager.acquire(LOCK_KEY, "holder")
        work = Mock()
        reuse = Mock()

        result = runner.run(LOCK_KEY, work, reuse=reuse)

        assert result.status is RunStatus.SKIPPED
        work.assert_not_called()
        reuse.assert_not_called()
        # The holder's lock is untouched
        assert manager.is_locked(LOCK_KEY) is True

    def test_skips_when_wait_is_cancelled(self, store, config, logger, clock) -> None:
        """Test a cancelled wait skips without polling or reusing."""
        runner, manager = self._runner(store, config, logger, clock)
        manager.acquire(LOCK_KEY, "holder")
        cancel_event = threading.Event()
        cancel_event.set()
        work = Mock()
        reuse = Mock()

        result = runner.run(LOCK_KEY, work, reuse=reuse, cancel_event=cancel_event)

        assert result.status is RunStatus.SKIPPED
        work.assert_not_called()
        reuse.assert_not_called()
        assert clock.sleeps_ms == []
        assert manager.is_locked(LOCK_KEY) is True

    def test_store_failure_propagates(self, config, logger) -> None:
        """Test infrastructure errors reach the caller."""
        manager = Mock(spec=LockManager)
        manager.acquire.side_effect = LockStoreError("connection refused")
        runner = ExclusiveRunner(manager, Mock(spec=BackoffWaiter), logger)

        with pytest.raises(LockStoreError):
            runner.run(LOCK_KEY, Mock())
        manager.release.assert_not_called()
