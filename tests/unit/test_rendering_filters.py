"""Unit tests for buildvault/rendering/filters.py - Custom Jinja2 filters."""

from buildvault.rendering.filters import byte_rows, comment_safe


class TestByteRows:
    """Tests for byte_rows filter."""

    def test_splits_into_rows(self):
        """Should emit full rows followed by the remainder."""
        assert byte_rows(bytes([1, 2, 3, 4, 5]), per_row=2) == ["1, 2,", "3, 4,", "5,"]

    def test_default_row_width(self):
        rows = byte_rows(bytes(range(30)))

        assert len(rows) == 3
        assert rows[0].count(",") == 12

    def test_empty(self):
        assert byte_rows(b"") == []


class TestCommentSafe:
    """Tests for comment_safe filter."""

    def test_newlines_collapsed(self):
        """Should keep multi-line input on one line."""
        assert comment_safe("dev\nimport os") == "dev import os"

    def test_docstring_terminator_removed(self):
        assert comment_safe('evil"""') == "evil"

    def test_escaped_quotes_cannot_rebuild_terminator(self):
        assert comment_safe('a""\\"b') == "ab"

    def test_non_printable_become_spaces(self):
        assert comment_safe("dev\x00\x1bstage\u2028") == "dev stage"

    def test_backslashes_removed(self):
        assert comment_safe("a\\b") == "ab"

    def test_non_string_values(self):
        assert comment_safe(3) == "3"
