import pytest

from asciiraster.buffer import CharBuffer


def cells_with(buffer: CharBuffer, char: str) -> set[tuple[int, int]]:
    """Coordinates of every cell holding ``char``."""
    return {(x, y) for y in range(buffer.height) for x in range(buffer.width) if buffer.get(x, y) == char}


def painted(buffer: CharBuffer) -> set[tuple[int, int]]:
    return {(x, y) for y in range(buffer.height) for x in range(buffer.width) if buffer.depth[y, x] > float("-inf")}


@pytest.fixture
def buffer():
    return CharBuffer(20, 10)


@pytest.fixture
def boxed():
    """5x5 buffer of '#' with a 3x3 hole of spaces in the middle."""
    buf = CharBuffer(5, 5, fill_char="#")
    for y in range(1, 4):
        buf.draw_text(1, y, "   ")
    return buf
