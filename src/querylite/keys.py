"""Cache key encoding."""

from collections.abc import Sequence

_ESCAPE_MAP = {"\\": "\\\\", ":": "\\:"}

SEPARATOR = ":"


def encode_key(fragments: Sequence[str]) -> str:
    """Join key fragments into a single cache key.

    Fragments are joined with ``:``. Separators and backslashes inside a
    fragment are escaped, so two sequences share a key only when they are
    element-wise equal.

    Example:
        encode_key(["user", "123"])   # "user:123"
        encode_key(["a:b", "c"])      # "a\\:b:c"
    """

    def escape(part: str) -> str:
        result = part
        for char, escaped in _ESCAPE_MAP.items():
            result = result.replace(char, escaped)
        return result

    return SEPARATOR.join(escape(str(p)) for p in fragments)
