"""Base adapter protocol for storage backends."""

from typing import Protocol, runtime_checkable

from querylite.types import CacheEntry


@runtime_checkable
class AsyncStorageAdapter(Protocol):
    """Async storage adapter interface."""

    async def get(self, key: str) -> CacheEntry[object] | None:
        """Get a cache entry by key."""
        ...

    async def set(self, key: str, entry: CacheEntry[object]) -> None:
        """Store a cache entry."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a cache entry."""
        ...
