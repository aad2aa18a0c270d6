"""Core types for querylite."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
V = TypeVar("V")

# Minutes (30, 0.5) or a duration string ("30s", "5m")
Duration = int | float | str


def _noop(*_: Any) -> None:
    return None


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value wrapped with its expiry."""

    value: T
    expires_at: int | None  # Unix timestamp ms, None never expires
    created_at: int = 0  # Unix timestamp ms

    def to_envelope(self) -> dict[str, Any]:
        """Plain-dict form used by backends that serialize entries."""
        return {"value": self.value, "expiry": self.expires_at, "at": self.created_at}

    @classmethod
    def from_envelope(cls, envelope: dict[str, Any]) -> "CacheEntry[Any]":
        return cls(
            value=envelope["value"],
            expires_at=envelope.get("expiry"),
            created_at=envelope.get("at", 0),
        )


@dataclass(frozen=True, slots=True)
class QueryHooks(Generic[T]):
    """Lifecycle callbacks for a Query."""

    loading: Callable[[bool], None] = _noop
    error: Callable[[Exception], None] = _noop
    success: Callable[[T], None] = _noop
    request: Callable[["Awaitable[T | None] | None"], None] = _noop


@dataclass(frozen=True, slots=True)
class RefetchOptions:
    """Environment signals that trigger a refetch."""

    on_window_focus: bool = False
    on_reconnect: bool = True


@dataclass(frozen=True, slots=True)
class InitialOptions(Generic[T]):
    """How a Query populates itself on construction."""

    value: T | None = None
    cache_first: bool = True
    manual_fetch: bool = False
    always_fetch: bool = True


@dataclass(frozen=True, slots=True)
class MutationHooks(Generic[T, V]):
    """Lifecycle callbacks for a Mutation.

    ``mutate`` receives a value or an updater and returns the concrete value
    to patch. ``error`` receives the failure and the cached value to roll
    back to.
    """

    mutate: Callable[[Any], V] = _identity
    loading: Callable[[bool], None] = _noop
    error: Callable[[Exception, T | None], None] = _noop
    success: Callable[[Any], None] = _noop
