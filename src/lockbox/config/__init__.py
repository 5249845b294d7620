"""Configuration loading for Lockbox."""

from .config_manager import ConfigManager, LockConfig

__all__ = ["ConfigManager", "LockConfig"]
