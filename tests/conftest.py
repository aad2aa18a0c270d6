"""Shared pytest fixtures."""

import pytest

from querylite import AsyncMemoryAdapter, EventRegistry, InitialOptions


@pytest.fixture
def async_adapter() -> AsyncMemoryAdapter:
    """Create a fresh AsyncMemoryAdapter for each test."""
    return AsyncMemoryAdapter()


@pytest.fixture
def events() -> EventRegistry:
    """Create an empty listener registry for each test."""
    return EventRegistry()


@pytest.fixture
def manual() -> InitialOptions:
    """Initial options that skip both the cache read and the initial fetch."""
    return InitialOptions(cache_first=False, manual_fetch=True)
