"""Shared fixtures for restore manager tests."""

import pytest

from restore_manager.core.clock import FixedClock
from restore_manager.providers.memory_provider import InMemoryProvider

from factories import NOW, interval_config


@pytest.fixture
def now():
    """Fixed reference instant."""
    return NOW


@pytest.fixture
def clock():
    """Fixed clock at the reference instant."""
    return FixedClock(NOW)


@pytest.fixture
def config():
    """Interval configuration without an interframe floor."""
    return interval_config()


@pytest.fixture
def provider(clock):
    """Empty in-memory provider without its own frequency window."""
    return InMemoryProvider(clock=clock, creation_interval_minutes=0)
