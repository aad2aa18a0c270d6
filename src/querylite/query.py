"""Query coordinator.

A ``Query`` owns one logical resource identified by its cache key. It decides
when to call the fetch function, serves cached values, refreshes stale data
in the background and reacts to focus/reconnect signals.

Operations on one instance never overlap. A call made while another
operation owns the instance is queued and runs once everything ahead of it
has finished:

    query = Query(keys=["user", "42"], fn=load_user, adapter=adapter)
    first = query.fetch()
    second = query.fetch()    # queued behind first
    await asyncio.gather(first, second)

Queued callers each run their own classification, so ``second`` usually
resolves to ``None`` once ``first`` has populated the cache.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any, Generic, TypeVar

from querylite.adapters.base import AsyncStorageAdapter
from querylite.duration import minutes_to_ms
from querylite.errors import normalize_error
from querylite.events import EventRegistry, Listeners
from querylite.keys import encode_key
from querylite.ttl import check_ttl, is_expired, now_ms, read_entry, write_entry
from querylite.types import (
    CacheEntry,
    Duration,
    InitialOptions,
    QueryHooks,
    RefetchOptions,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Refreshes closer than this to the last successful fetch are dropped
REFRESH_COLLAPSE_MS = 150

Operation = Callable[[], Awaitable[Any]]


class FetchKind(enum.Enum):
    """Why a fetch was requested."""

    INITIAL = "initial"
    NORMAL = "normal"
    REFRESH = "refresh"
    REFETCH = "refetch"


def _settle(target: asyncio.Future[Any], source: asyncio.Future[Any]) -> None:
    """Copy the outcome of source into target."""
    if target.done():
        return
    if source.cancelled():
        target.cancel()
        return
    exc = source.exception()
    if exc is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


class Query(Generic[T]):
    """Single-flight fetch coordinator for one cache key.

    Must be constructed inside a running event loop: construction may start
    a cache read and the initial fetch.

    Args:
        keys: Fragments identifying the resource
        fn: Fetch function, called with the arguments given to ``fetch``
        adapter: Storage backend shared with other coordinators
        stale_time: Minutes (or a duration string) before data is refreshed
        cache_time: Minutes (or a duration string) cached entries stay valid
        on: Lifecycle hooks
        refetch: Which environment signals trigger a refetch
        initial: How the query populates itself on construction
        events: Registry delivering focus/reconnect signals. A private one
            is created when omitted.
    """

    def __init__(
        self,
        *,
        keys: Sequence[str],
        fn: Callable[..., Awaitable[T]],
        adapter: AsyncStorageAdapter,
        stale_time: Duration = 30,
        cache_time: Duration = 30,
        on: QueryHooks[T] | None = None,
        refetch: RefetchOptions | None = None,
        initial: InitialOptions[T] | None = None,
        events: EventRegistry | None = None,
    ) -> None:
        self._fn = fn
        self._adapter = adapter
        self._stale_time_ms = minutes_to_ms(stale_time)
        self._cache_time_ms = minutes_to_ms(cache_time)
        self._on: QueryHooks[T] = on if on is not None else QueryHooks()
        self._refetch = refetch if refetch is not None else RefetchOptions()
        self._initial: InitialOptions[T] = (
            initial if initial is not None else InitialOptions()
        )
        self.events = events if events is not None else EventRegistry()

        self._key = encode_key(keys)
        self._data: T | None = None
        self._error: Exception | None = None
        self._loading = False
        self._fetched_once = False
        self._is_queued = False
        self._last_fetched_time = 0
        self._last_args: tuple[Any, ...] = ()

        self._queue: deque[tuple[Operation, asyncio.Future[Any]]] = deque()
        self._pending = False
        self._stale_timer: asyncio.TimerHandle | None = None
        self._unregister: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._loop = asyncio.get_running_loop()

        if self._initial.value is not None:
            self._data = self._initial.value

        if self._initial.cache_first:
            self._pending = True
            self._spawn(self._hydrate())

        if not self._initial.manual_fetch:
            self.fetch(*self._last_args)

        self._setup_listeners()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def key(self) -> str:
        return self._key

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def fetch(self, *args: Any) -> asyncio.Future[T | None]:
        """Fetch unless a cached or already-scheduled result makes it redundant.

        Resolves to the fetched data, or ``None`` when nothing was fetched or
        the fetch function failed (see ``error``).
        """
        return self._run(lambda: self._fetch_data(FetchKind.NORMAL, args))

    def refresh(self, *args: Any) -> asyncio.Future[T | None]:
        """Fetch regardless of the cache.

        Dropped (resolves to ``None``) when the last successful fetch finished
        less than 150ms ago.
        """

        async def op() -> T | None:
            if now_ms() - self._last_fetched_time < REFRESH_COLLAPSE_MS:
                logger.debug("Collapsing refresh for %s", self._key)
                return None
            return await self._fetch_data(FetchKind.REFRESH, args)

        return self._run(op)

    def update_keys(
        self, keys: Sequence[str]
    ) -> Callable[..., asyncio.Future[T | None]]:
        """Point the query at another resource.

        When the key changes, data and error are cleared and the stale timer
        and listeners move to the new key. Nothing is fetched; call the
        returned function to do so.
        """
        new_key = encode_key(keys)
        if new_key != self._key:
            logger.debug("Rebinding query %s -> %s", self._key, new_key)
            self._cancel_stale_timer()
            self._is_queued = False
            self._teardown_listeners()
            self._key = new_key
            self._data = None
            self._error = None
            self._setup_listeners()
        return self.fetch

    def close(self) -> None:
        """Stop background refreshes and drop environment listeners."""
        self._cancel_stale_timer()
        self._is_queued = False
        self._teardown_listeners()

    async def settled(self) -> None:
        """Wait until no operation is running or queued."""
        while self._tasks or self._queue:
            if self._tasks:
                await asyncio.wait(set(self._tasks))
            else:
                await asyncio.sleep(0)

    # -------------------------------------------------------------------------
    # Single-flight scheduling
    # -------------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _run(self, op: Operation) -> asyncio.Future[Any]:
        """Start op now if the instance is free, otherwise queue it.

        The caller gets a future of its own; cancelling it never reaches the
        running operation.
        """
        future: asyncio.Future[Any] = self._loop.create_future()
        if self._pending:
            self._queue.append((op, future))
            logger.debug(
                "Queued operation for %s (%d waiting)", self._key, len(self._queue)
            )
            return future
        self._pending = True
        self._start(op, future)
        return future

    def _start(self, op: Operation, future: asyncio.Future[Any]) -> None:
        task = self._spawn(self._exclusive(op))
        task.add_done_callback(lambda t: _settle(future, t))

    async def _exclusive(self, op: Operation) -> Any:
        try:
            return await op()
        finally:
            self._advance()

    def _advance(self) -> None:
        """Release the instance and start the oldest queued operation."""
        self._pending = False
        while self._queue:
            op, future = self._queue.popleft()
            if future.cancelled():
                continue
            self._pending = True
            self._start(op, future)
            return

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def _fetch_data(self, kind: FetchKind, args: tuple[Any, ...]) -> T | None:
        if self._loading:
            logger.debug("Fetch already running for %s, ignoring %s", self._key, kind)
            return None

        self._loading = True
        task: asyncio.Task[T | None] | None = None
        try:
            try:
                self._on.loading(True)
                task = self._loop.create_task(self._perform(kind, args))
                self._on.request(task)
            except Exception as exc:
                # Not started yet, so cancelling cannot interrupt fn
                if task is not None:
                    task.cancel()
                logger.warning("Hook failed while starting fetch for %s", self._key)
                self._record_error(exc)
                return None
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if (
                task is None
                or not task.cancelled()
                or (current is not None and current.cancelling())
            ):
                raise
            logger.debug("Fetch for %s cancelled by request hook", self._key)
            return None
        finally:
            self._loading = False
            self._on.loading(False)
            self._fetched_once = True
            self._on.request(None)

    async def _perform(self, kind: FetchKind, args: tuple[Any, ...]) -> T | None:
        key = self._key
        try:
            if self._fetched_once:
                if kind is FetchKind.REFETCH:
                    if now_ms() - self._last_fetched_time < self._stale_time_ms:
                        logger.debug("Skipping refetch for %s, still fresh", key)
                        return None
                elif kind is FetchKind.NORMAL:
                    if self._is_queued:
                        logger.debug("Refresh already scheduled for %s", key)
                        return None
                    if await self._set_from_cache() is not None:
                        logger.debug("Served %s from cache", key)
                        return None
            elif kind is FetchKind.REFETCH:
                return None

            self._last_args = args
            data = await self._call(args)
            if key != self._key:
                logger.debug("Discarding result for %s, key changed", key)
                return None

            self._on_data(data)
            await write_entry(self._adapter, key, data, self._cache_time_ms)
            self._arm_stale_timer()
            return self._data
        except Exception as exc:
            self._record_error(exc)
            return None

    def _record_error(self, exc: BaseException) -> None:
        self._error = normalize_error(exc)
        logger.debug("Fetch failed for %s: %r", self._key, self._error)
        self._on.error(self._error)

    async def _call(self, args: tuple[Any, ...]) -> T:
        result = self._fn(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _on_data(self, data: T) -> None:
        self._data = data
        self._error = None
        self._on.success(data)

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    async def _hydrate(self) -> None:
        """Populate from cache before the first fetch."""
        try:
            entry = await self._set_from_cache()
            if entry is not None and not is_expired(entry):
                self._arm_stale_timer()
                if not self._initial.always_fetch:
                    self._fetched_once = True
            if self._initial.always_fetch:
                self._is_queued = False
        finally:
            self._advance()

    async def _set_from_cache(self) -> CacheEntry[object] | None:
        """Adopt the cached entry for the current key, if usable.

        Before the first fetch with ``cache_first`` the entry is shown even
        when expired; afterwards expired entries are deleted and ignored.
        """
        key = self._key
        entry = await read_entry(self._adapter, key)
        if entry is None:
            return None
        if not (self._initial.cache_first and not self._fetched_once):
            entry = await check_ttl(self._adapter, key, entry)
            if entry is None:
                return None
        if key != self._key:
            return None
        # Only success fires here; loading is owned by _fetch_data
        self._on_data(entry.value)  # type: ignore[arg-type]
        return entry

    # -------------------------------------------------------------------------
    # Stale timer
    # -------------------------------------------------------------------------

    def _arm_stale_timer(self) -> None:
        self._last_fetched_time = now_ms()
        self._cancel_stale_timer()

        if self._stale_time_ms > 0:
            self._is_queued = True
            self._stale_timer = self._loop.call_later(
                self._stale_time_ms / 1000, self._on_stale
            )

    def _cancel_stale_timer(self) -> None:
        if self._stale_timer is not None:
            self._stale_timer.cancel()
            self._stale_timer = None

    def _on_stale(self) -> None:
        self._stale_timer = None
        self._is_queued = False
        logger.debug("Data for %s went stale, refreshing", self._key)
        self.refresh(*self._last_args)

    # -------------------------------------------------------------------------
    # Environment signals
    # -------------------------------------------------------------------------

    def _refetch_data(self) -> asyncio.Future[T | None]:
        args = self._last_args
        return self._run(lambda: self._fetch_data(FetchKind.REFETCH, args))

    def _setup_listeners(self) -> None:
        if not (self._refetch.on_window_focus or self._refetch.on_reconnect):
            return
        listeners = Listeners(
            focus=self._refetch_data if self._refetch.on_window_focus else None,
            online=self._refetch_data if self._refetch.on_reconnect else None,
        )
        self._unregister = self.events.register(self._key, listeners)

    def _teardown_listeners(self) -> None:
        if self._unregister is not None:
            self._unregister()
            self._unregister = None


__all__ = ["FetchKind", "Query", "REFRESH_COLLAPSE_MS"]
