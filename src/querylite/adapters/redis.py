"""Redis storage adapter.

Each cache key maps to one Redis string holding the entry's JSON envelope:

    querylite:cache:todo:1 -> {"value": {...}, "expiry": 1718000000000, "at": ...}

The Redis key is given the same absolute expiry, so Redis drops entries that
the TTL check would reject anyway. Values must be JSON-serializable.
"""

from __future__ import annotations

import json
from typing import Any

from querylite.types import CacheEntry


class AsyncRedisAdapter:
    """Stores TTL envelopes in Redis through a ``redis.asyncio`` client."""

    def __init__(self, client: Any, *, prefix: str = "querylite") -> None:
        self._client = client
        self._namespace = f"{prefix}:cache:"

    async def get(self, key: str) -> CacheEntry[object] | None:
        raw = await self._client.get(self._namespace + key)
        if raw is None:
            return None
        return CacheEntry.from_envelope(json.loads(raw))

    async def set(self, key: str, entry: CacheEntry[object]) -> None:
        payload = json.dumps(entry.to_envelope())
        # pxat=None leaves the key without expiry
        await self._client.set(self._namespace + key, payload, pxat=entry.expires_at)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._namespace + key)

    async def clear(self) -> None:
        """Drop every entry under this adapter's namespace."""
        batch: list[Any] = []
        async for name in self._client.scan_iter(match=self._namespace + "*"):
            batch.append(name)
            if len(batch) >= 100:
                await self._client.delete(*batch)
                batch.clear()
        if batch:
            await self._client.delete(*batch)

    async def aclose(self) -> None:
        await self._client.aclose()
