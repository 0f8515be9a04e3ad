"""
Tests for langport.row_path.

Tests row path token parsing and the container field stack.
"""

import pytest

from langport import row_path
from langport.row_path import FieldStack


class TestFieldName:
    """Tests for resolving the field a path addresses."""

    @pytest.mark.parametrize("path,expected", [
        ("title", "title"),
        ("images[door.jpg]", "images"),
        ("specs[3].label", "specs"),
        ("blurbs.intro", "blurbs"),
        ("blocks > body", "body"),
        ("blocks > meta > specs[1].notes", "specs"),
    ])
    def test_field_name(self, path, expected):
        """Test that the last chain segment's base name is returned."""
        assert row_path.field_name(path) == expected

    def test_filename_with_dots(self):
        """Test that dots inside an attachment key do not split the name."""
        assert row_path.field_name("images[my.photo.jpg]") == "images"
        assert row_path.field_index("images[my.photo.jpg]") == "my.photo.jpg"


class TestTokens:
    """Tests for column, property and index extraction."""

    def test_field_column(self):
        assert row_path.field_column("specs[3].label") == "label"
        assert row_path.field_column("outer > specs[3].label_2") == "label_2"
        assert row_path.field_column("specs[3]") == ""

    def test_field_column_rejects_non_identifiers(self):
        """Test that a column that is not a plain name is ignored."""
        assert row_path.field_column("specs[3].la-bel") == ""

    def test_field_property(self):
        assert row_path.field_property("blurbs.intro") == "intro"
        assert row_path.field_property("a > blurbs.intro") == "intro"
        assert row_path.field_property("blurbs") == ""

    def test_field_index(self):
        assert row_path.field_index("specs[12].label") == "12"
        assert row_path.field_index("blocks > images[a.jpg]") == "a.jpg"
        assert row_path.field_index("title") == ""

    def test_item_id(self):
        assert row_path.item_id("12") == 12
        assert row_path.item_id(12) == 12
        assert row_path.item_id("3 > 40 > 41") == 41
        assert row_path.item_id("abc") == 0
        assert row_path.item_id("3 > x") == 0

    def test_strip_indexes(self):
        assert row_path.strip_indexes("images[a.jpg]") == "images"
        assert row_path.strip_indexes("specs[1].label") == "specs.label"
        assert row_path.strip_indexes("blocks > title") == "blocks > title"


class TestFieldStack:
    """Tests for container path prefixing."""

    def test_not_nested_leaves_paths(self):
        stack = FieldStack()
        with stack.enter(1, "title"):
            assert not stack.nested
            assert stack.prefix("1", "title") == ("1", "title")

    def test_nested_prefix_uses_outer_entries(self):
        """Test that all but the last entry prefix the row paths."""
        stack = FieldStack()
        with stack.enter(1, "blocks"):
            with stack.enter(40, "inner"):
                with stack.enter(41, "title"):
                    assert stack.prefix("41", "title") == (
                        "1 > 40 > 41",
                        "blocks > inner > title",
                    )

    def test_entries_popped_after_exception(self):
        stack = FieldStack()
        with pytest.raises(RuntimeError):
            with stack.enter(1, "blocks"):
                raise RuntimeError("boom")
        assert len(stack) == 0
