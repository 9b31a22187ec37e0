"""Utility functions and helpers."""

from .file_lock import acquire_lock, locked, lock_path_for
from .logging_setup import configure_logging
from .retry import RetryManager

__all__ = [
    "acquire_lock",
    "locked",
    "lock_path_for",
    "configure_logging",
    "RetryManager",
]
