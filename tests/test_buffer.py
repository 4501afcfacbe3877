import math

import pytest

from asciiraster.buffer import CharBuffer, to_cell
from asciiraster.errors import BufferSizeError, RasterError


def test_new_buffer_is_blank():
    buf = CharBuffer(3, 2)
    assert buf.to_string() == "   \n   "
    assert buf.get_color(0, 0) is None
    assert buf.depth[0, 0] == -math.inf


@pytest.mark.parametrize("width, height", [(0, 5), (5, 0), (-1, 3), (2.5, 3), (True, 3)])
def test_non_positive_size_is_rejected(width, height):
    with pytest.raises(BufferSizeError, match="positive integer"):
        CharBuffer(width, height)


def test_size_error_is_a_value_error():
    with pytest.raises(ValueError):
        CharBuffer(0, 0)
    assert issubclass(BufferSizeError, RasterError)


def test_set_and_get():
    buf = CharBuffer(4, 4)
    buf.set(1, 2, "x", "red")
    assert buf.get(1, 2) == "x"
    assert buf.get_color(1, 2) == "red"


def test_coordinates_round_to_nearest_cell():
    buf = CharBuffer(4, 4)
    buf.set(1.5, 0.4, "a")
    assert buf.get(2, 0) == "a"
    assert buf.get(1.6, 0.2) == "a"
    assert to_cell(2.5) == 3
    assert to_cell(-0.5) == 0


def test_out_of_bounds_is_ignored():
    buf = CharBuffer(3, 3, fill_char=".")
    buf.set(-1, 0, "x")
    buf.set(3, 0, "x")
    buf.set(0, 99, "x")
    assert buf.to_string() == "...\n...\n..."
    assert buf.get(-5, -5) == "."
    assert buf.get_color(10, 10) is None


def test_higher_depth_wins_regardless_of_order():
    buf = CharBuffer(2, 1)
    buf.set(0, 0, "a", depth=1)
    buf.set(0, 0, "b", depth=5)
    buf.set(0, 0, "c", depth=3)
    assert buf.get(0, 0) == "b"

    buf.set(1, 0, "c", depth=3)
    buf.set(1, 0, "b", depth=5)
    buf.set(1, 0, "a", depth=1)
    assert buf.get(1, 0) == "b"


def test_equal_depth_last_writer_wins():
    buf = CharBuffer(1, 1)
    buf.set(0, 0, "a", "red", depth=2)
    buf.set(0, 0, "b", "blue", depth=2)
    assert buf.get(0, 0) == "b"
    assert buf.get_color(0, 0) == "blue"


def test_lower_depth_never_changes_cell():
    buf = CharBuffer(1, 1)
    buf.set(0, 0, "a", "red", depth=2)
    buf.set(0, 0, "b", "blue", depth=1.999)
    assert buf.get(0, 0) == "a"
    assert buf.get_color(0, 0) == "red"
    assert buf.depth[0, 0] == 2


def test_overwrite_bypasses_depth_but_keeps_depth_monotonic():
    buf = CharBuffer(1, 1)
    buf.set(0, 0, "a", depth=5)
    buf.overwrite(0, 0, "b", depth=1)
    assert buf.get(0, 0) == "b"
    assert buf.depth[0, 0] == 5


def test_clear_resets_cells():
    buf = CharBuffer(2, 2)
    buf.set(0, 0, "x", "red", depth=3)
    buf.clear()
    assert buf.to_string() == "  \n  "
    assert buf.get_color(0, 0) is None
    assert buf.depth[0, 0] == -math.inf
    buf.set(0, 0, "y", depth=-100)
    assert buf.get(0, 0) == "y"


def test_clear_with_custom_fill():
    buf = CharBuffer(2, 1)
    buf.clear(".")
    assert buf.to_string() == ".."
    assert buf.fill_char == " "


def test_resize_keeps_top_left_overlap():
    buf = CharBuffer(4, 4)
    for y, row in enumerate(["abcd", "efgh", "ijkl", "mnop"]):
        buf.draw_text(0, y, row, color=f"c{y}")
    buf.resize(2, 2)
    assert (buf.width, buf.height) == (2, 2)
    assert buf.to_string() == "ab\nef"
    assert buf.get_color(1, 1) == "c1"


def test_resize_grow_pads_with_fill():
    buf = CharBuffer(2, 1, fill_char=".")
    buf.draw_text(0, 0, "ab")
    buf.resize(3, 2)
    assert buf.to_string() == "ab.\n..."


def test_resize_rejects_bad_size():
    buf = CharBuffer(2, 2)
    with pytest.raises(BufferSizeError):
        buf.resize(0, 2)


def test_draw_text_clips_at_edge():
    buf = CharBuffer(5, 1)
    buf.draw_text(3, 0, "hello")
    assert buf.to_string() == "   he"
    buf.draw_text(-2, 0, "xyz")
    assert buf.to_string() == "z  he"


def test_copy_from_treats_fill_as_transparent():
    src = CharBuffer(3, 1)
    src.draw_text(0, 0, "a c", color="red")
    dest = CharBuffer(3, 1, fill_char=" ")
    dest.draw_text(0, 0, "xyz")
    dest.copy_from(src, 0, 0, 0, 0, 3, 1)
    assert dest.to_string() == "ayc"
    assert dest.get_color(0, 0) == "red"


def test_copy_from_with_offset():
    src = CharBuffer(2, 2, fill_char=".")
    src.draw_text(0, 0, "ab")
    src.draw_text(0, 1, "cd")
    dest = CharBuffer(4, 3, fill_char=".")
    dest.copy_from(src, 0, 0, 1, 1, 2, 2)
    assert dest.to_string() == "....\n.ab.\n.cd."


def test_to_array_is_a_copy():
    buf = CharBuffer(2, 1)
    buf.draw_text(0, 0, "ab")
    arr = buf.to_array()
    assert arr == [["a", "b"]]
    arr[0][0] = "z"
    assert buf.get(0, 0) == "a"


def test_str_matches_to_string():
    buf = CharBuffer(2, 2)
    buf.set(1, 1, "x")
    assert str(buf) == buf.to_string() == "  \n x"


def test_colour_runs_group_consecutive_cells():
    buf = CharBuffer(6, 2)
    buf.draw_text(0, 0, "aa", color="red")
    buf.draw_text(2, 0, "bb", color="blue")
    buf.draw_text(4, 0, "cc", color="red")
    runs = buf.colour_runs()
    assert runs[0] == [("red", "aa"), ("blue", "bb"), ("red", "cc")]
    assert runs[1] == [(None, "      ")]


def test_to_html_escapes_and_wraps_runs():
    buf = CharBuffer(4, 1)
    buf.draw_text(0, 0, "<&", color="#ff0000")
    buf.draw_text(2, 0, ">x")
    assert buf.to_html() == '<span style="color:#ff0000">&lt;&amp;</span>&gt;x'


def test_multi_code_point_glyphs_are_kept_whole():
    accented = "e\u0301"
    heart = "\u2764\ufe0f"
    buf = CharBuffer(3, 1)
    buf.set(0, 0, accented)
    buf.set(1, 0, heart)
    assert buf.get(0, 0) == accented
    assert buf.get(1, 0) == heart
    assert buf.to_string() == accented + heart + " "
    assert buf.to_array() == [[accented, heart, " "]]


def test_empty_fill_char_is_rejected():
    with pytest.raises(RasterError, match="non-empty"):
        CharBuffer(3, 2, fill_char="")


def test_empty_glyph_is_not_written():
    buf = CharBuffer(3, 2)
    buf.set(1, 1, "")
    buf.overwrite(2, 1, "")
    assert buf.to_string() == "   \n   "
    assert buf.depth[1, 1] == -math.inf
