"""Mutation coordinator with optimistic updates and rollback."""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Generic, TypeVar

from querylite.adapters.base import AsyncStorageAdapter
from querylite.duration import minutes_to_ms
from querylite.errors import normalize_error
from querylite.keys import encode_key
from querylite.ttl import read_valid, write_entry
from querylite.types import Duration, MutationHooks

T = TypeVar("T")
V = TypeVar("V")

logger = logging.getLogger(__name__)


class Mutation(Generic[T, V]):
    """Applies a value through ``patch`` and keeps the last good value cached.

    The ``mutate`` hook turns the caller's value or updater into the value
    to send; the caller applies it optimistically to its own state. When
    ``patch`` fails the ``error`` hook receives the last cached value so the
    caller can roll back, and the exception is re-raised.

    Without ``keys`` the mutation caches under a random UUID, which never
    matches a Query's key. Share ``keys`` with a Query (and the adapter) to
    make committed values visible to it.
    """

    def __init__(
        self,
        initial: T | None = None,
        *,
        patch: Callable[[V], Awaitable[Any]],
        adapter: AsyncStorageAdapter,
        keys: Sequence[str] | None = None,
        cache_time: Duration = 30,
        on: MutationHooks[T, V] | None = None,
    ) -> None:
        self._patch = patch
        self._adapter = adapter
        self._cache_time_ms = minutes_to_ms(cache_time)
        self._on: MutationHooks[T, V] = on if on is not None else MutationHooks()
        self._key = encode_key(keys) if keys is not None else str(uuid.uuid4())
        self._loading = False
        self._error: Exception | None = None
        self._seed: asyncio.Task[None] | None = None

        if initial is not None:
            self._seed = asyncio.get_running_loop().create_task(
                write_entry(self._adapter, self._key, initial, self._cache_time_ms)
            )

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def key(self) -> str:
        return self._key

    async def mutate(self, value: V | Callable[[V], V]) -> Any:
        """Patch the value returned by the ``mutate`` hook.

        Returns the patch result. Re-raises the patch failure after handing
        the rollback value to the ``error`` hook.
        """
        concrete = self._on.mutate(value)
        self._loading = True
        self._on.loading(True)
        try:
            if self._seed is not None:
                await self._seed
                self._seed = None

            try:
                result = self._patch(concrete)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                self._error = normalize_error(exc)
                cached = await read_valid(self._adapter, self._key)
                if cached is not None:
                    self._on.error(self._error, cached.value)  # type: ignore[arg-type]
                else:
                    logger.warning("No cached value to roll back %s to", self._key)
                raise

            self._error = None
            await write_entry(self._adapter, self._key, concrete, self._cache_time_ms)
            self._on.success(result)
            return result
        finally:
            self._loading = False
            self._on.loading(False)


__all__ = ["Mutation"]
