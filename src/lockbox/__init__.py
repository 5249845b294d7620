"""Lockbox - Distributed lease locks backed by a shared SQL table.

Keeps independent processes from running the same expensive, side-effecting
operation for the same key at the same time.
"""

__version__ = "0.1.0"

from . import exceptions, logging

__all__ = ["exceptions", "logging"]
