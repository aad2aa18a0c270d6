"""Tests for cache key encoding."""

from querylite import encode_key


class TestEncodeKey:
    """Tests for encode_key function."""

    def test_joins_with_colon(self) -> None:
        """Plain fragments are joined with a colon."""
        assert encode_key(["user", "123"]) == "user:123"
        assert encode_key(["user", "123", "posts"]) == "user:123:posts"

    def test_single_fragment(self) -> None:
        assert encode_key(["todos"]) == "todos"

    def test_empty_sequence(self) -> None:
        assert encode_key([]) == ""

    def test_accepts_tuples(self) -> None:
        assert encode_key(("a", "b")) == encode_key(["a", "b"])

    def test_deterministic(self) -> None:
        """Equal sequences always produce the same key."""
        assert encode_key(["x", "y"]) == encode_key(["x", "y"])

    def test_order_matters(self) -> None:
        assert encode_key(["a", "b"]) != encode_key(["b", "a"])

    def test_separator_in_fragment_does_not_collide(self) -> None:
        """Fragments containing ':' cannot alias a different split."""
        assert encode_key(["a:b", "c"]) != encode_key(["a", "b:c"])
        assert encode_key(["a:b"]) != encode_key(["a", "b"])

    def test_escapes_separator_and_backslash(self) -> None:
        assert encode_key(["a:b"]) == "a\\:b"
        assert encode_key(["a\\b"]) == "a\\\\b"
