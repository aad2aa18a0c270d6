"""In-process storage adapter."""

from querylite.types import CacheEntry


class AsyncMemoryAdapter:
    """Keeps envelopes in a dict, optionally bounded.

    With ``max_items`` set, the least recently read or written key is evicted
    once the bound is exceeded. Expired entries are left for the TTL check to
    remove. No method awaits, so each call completes without interleaving.
    """

    def __init__(self, max_items: int | None = None) -> None:
        self._entries: dict[str, CacheEntry[object]] = {}
        self._max_items = max_items

    def _touch(self, key: str, entry: CacheEntry[object]) -> None:
        # dicts keep insertion order; re-inserting marks key most recent
        self._entries.pop(key, None)
        self._entries[key] = entry

    async def get(self, key: str) -> CacheEntry[object] | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._touch(key, entry)
        return entry

    async def set(self, key: str, entry: CacheEntry[object]) -> None:
        self._touch(key, entry)
        if self._max_items is not None:
            while len(self._entries) > self._max_items:
                del self._entries[next(iter(self._entries))]

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
