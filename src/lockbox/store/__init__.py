"""Durable keyed lock storage."""

from .lock_store import InsertResult, LockStore
from .models import Base, CacheLock

__all__ = ["Base", "CacheLock", "InsertResult", "LockStore"]
