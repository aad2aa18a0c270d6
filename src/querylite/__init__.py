"""querylite - Single-flight query and mutation coordination over a TTL cache."""

from contextlib import suppress

# Adapters (async only)
from querylite.adapters import (
    AsyncMemoryAdapter,
    AsyncStorageAdapter,
)

# Duration parsing
from querylite.duration import minutes_to_ms, parse_duration
from querylite.errors import FetchError, QueryliteError, normalize_error
from querylite.events import EventRegistry, Listeners

# Cache keys
from querylite.keys import encode_key

# Coordinators
from querylite.mutation import Mutation
from querylite.query import FetchKind, Query
from querylite.ttl import is_expired, with_ttl

# Core types
from querylite.types import (
    CacheEntry,
    Duration,
    InitialOptions,
    MutationHooks,
    QueryHooks,
    RefetchOptions,
)

# Optional adapter imports - only available when dependencies are installed
with suppress(ImportError):
    from querylite.adapters import AsyncRedisAdapter

__version__ = "0.1.0"

__all__ = [
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
    "CacheEntry",
    "Duration",
    "EventRegistry",
    "FetchError",
    "FetchKind",
    "InitialOptions",
    "Listeners",
    "Mutation",
    "MutationHooks",
    "Query",
    "QueryHooks",
    "QueryliteError",
    "RefetchOptions",
    "encode_key",
    "is_expired",
    "minutes_to_ms",
    "normalize_error",
    "parse_duration",
    "with_ttl",
]
