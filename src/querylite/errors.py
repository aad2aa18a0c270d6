"""Exceptions and error normalization."""

from typing import Any


class QueryliteError(Exception):
    """Base class for querylite errors."""


class FetchError(QueryliteError):
    """A fetch or patch function failed with something other than an Exception."""

    def __init__(self, reason: Any) -> None:
        super().__init__(_describe(reason))
        self.reason = reason


def _describe(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


def normalize_error(value: Any) -> Exception:
    """Coerce any failure value into an Exception. Never raises."""
    if isinstance(value, Exception):
        return value
    return FetchError(value)
