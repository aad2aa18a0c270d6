"""Storage adapters for querylite."""

from contextlib import suppress

from querylite.adapters.base import AsyncStorageAdapter
from querylite.adapters.memory import AsyncMemoryAdapter

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from querylite.adapters.redis import AsyncRedisAdapter

__all__ = [
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
]
