"""
Unit tests for byte-range edit application.
"""

from vue_migrate.core.edits import Edit, insert, apply_edits


class TestApplyEdits:
    """Test cases for apply_edits."""

    def test_edits_applied_back_to_front(self):
        """Test offsets of earlier edits stay valid after later ones are applied."""
        data = b"this.a + this.b"
        edits = [Edit(0, 6, "a.value"), Edit(9, 15, "b.value")]

        assert apply_edits(data, edits) == b"a.value + b.value"

    def test_multibyte_offsets(self):
        """Test offsets are byte offsets, not character offsets."""
        text = "'é' + this.x"
        start = len("'é' + ".encode("utf-8"))
        edit = Edit(start, start + len("this.x"), "x.value")

        assert apply_edits(text.encode("utf-8"), [edit]).decode("utf-8") == "'é' + x.value"

    def test_overlapping_edit_is_dropped(self):
        """Test the edit starting later wins when two ranges overlap."""
        data = b"abcdef"
        result = apply_edits(data, [Edit(0, 4, "X"), Edit(2, 6, "Y")])

        assert result == b"abY"

    def test_insert_at_range_boundary(self):
        """Test a zero-width insert at the start of a replaced range is kept."""
        data = b"line\nthis.q\n"
        result = apply_edits(data, [Edit(5, 11, "q"), insert(5, "// note\n")])

        assert result == b"line\n// note\nq\n"

    def test_out_of_range_edit_is_skipped(self):
        assert apply_edits(b"abc", [Edit(2, 10, "X")]) == b"abc"

    def test_duplicate_edits_apply_once(self):
        assert apply_edits(b"abc", [insert(0, "X"), insert(0, "X")]) == b"Xabc"
