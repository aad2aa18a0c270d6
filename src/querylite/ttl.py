"""TTL envelopes and backend access shared by Query and Mutation.

Backend failures are contained here: a failing read is logged and reported
as a miss, a failing write or delete is logged and dropped.
"""

from __future__ import annotations

import logging
import time
from typing import TypeVar

from querylite.adapters.base import AsyncStorageAdapter
from querylite.types import CacheEntry

T = TypeVar("T")

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


def with_ttl(value: T, ttl_ms: int) -> CacheEntry[T]:
    """Wrap a value in an envelope expiring ``ttl_ms`` from now."""
    now = now_ms()
    return CacheEntry(value=value, expires_at=now + ttl_ms, created_at=now)


def is_expired(entry: CacheEntry[object], now: int | None = None) -> bool:
    """Check if entry has passed its expiry. Entries without one never expire."""
    if entry.expires_at is None:
        return False
    if now is None:
        now = now_ms()
    return entry.expires_at < now


async def read_entry(
    adapter: AsyncStorageAdapter, key: str
) -> CacheEntry[object] | None:
    """Read an entry as stored, without looking at its expiry."""
    try:
        return await adapter.get(key)
    except Exception:
        logger.warning("Cache read failed for %s, treating as miss", key, exc_info=True)
        return None


async def check_ttl(
    adapter: AsyncStorageAdapter, key: str, entry: CacheEntry[object] | None
) -> CacheEntry[object] | None:
    """Return entry if still valid; delete it from the backend otherwise."""
    if entry is None:
        return None
    if not is_expired(entry):
        return entry
    logger.debug("Cache entry for %s expired at %s", key, entry.expires_at)
    await delete_entry(adapter, key)
    return None


async def read_valid(
    adapter: AsyncStorageAdapter, key: str
) -> CacheEntry[object] | None:
    """Read an entry, treating expired ones as a miss."""
    return await check_ttl(adapter, key, await read_entry(adapter, key))


async def write_entry(
    adapter: AsyncStorageAdapter, key: str, value: object, ttl_ms: int
) -> None:
    """Store value under key wrapped in a TTL envelope."""
    try:
        await adapter.set(key, with_ttl(value, ttl_ms))
    except Exception:
        logger.warning("Cache write failed for %s", key, exc_info=True)


async def delete_entry(adapter: AsyncStorageAdapter, key: str) -> None:
    """Best-effort delete."""
    try:
        await adapter.delete(key)
    except Exception:
        logger.warning("Cache delete failed for %s", key, exc_info=True)
