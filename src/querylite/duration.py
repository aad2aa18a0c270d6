"""Duration parsing utilities."""

import re

from querylite.types import Duration

MINUTE_MS = 60_000

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": MINUTE_MS,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: str) -> int:
    """Parse a duration string such as ``"30s"`` to milliseconds."""
    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]


def minutes_to_ms(duration: Duration) -> int:
    """Convert a stale/cache time to milliseconds.

    Numbers are minutes; strings go through ``parse_duration``.
    """
    if isinstance(duration, bool):
        raise TypeError(f"Invalid duration: {duration!r}")
    if isinstance(duration, str):
        return parse_duration(duration)
    if duration < 0:
        raise ValueError(f"Duration must not be negative: {duration!r}")
    return int(duration * MINUTE_MS)
