"""Lockbox Logging Module

Centralized logging configuration for the lock store, manager, waiter and sweeper.
"""

from .logger_setup import LoggerConfigError, LoggingConfig, configure_logging, get_logger

__all__ = ["LoggerConfigError", "LoggingConfig", "configure_logging", "get_logger"]
