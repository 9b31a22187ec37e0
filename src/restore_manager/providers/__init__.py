"""Checkpoint providers."""

from .base import CheckpointProvider
from .memory_provider import InMemoryProvider
from .powershell_provider import PowerShellProvider
from .task_scheduler import register_scheduled_task

__all__ = [
    "CheckpointProvider",
    "InMemoryProvider",
    "PowerShellProvider",
    "register_scheduled_task",
]
