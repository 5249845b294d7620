"""Expired lock cleanup for Lockbox."""

from lockbox.sweeper.cleanup_sweeper import CleanupSweeper

__all__ = ["CleanupSweeper"]
