from __future__ import annotations

import html
import math

import numpy as np

from asciiraster.errors import BufferSizeError, RasterError

ColourRun = tuple[str | None, str]


def to_cell(value: float) -> int:
    """Round a coordinate to its cell index, halves rounding up."""
    return int(math.floor(value + 0.5))


def _check_size(width, height) -> None:
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
            raise BufferSizeError(f"Buffer {name} must be a positive integer, got {value!r}")


class CharBuffer:
    """Fixed-size grid of glyphs with per-cell colour and paint depth.

    Writes are depth tested: a write at depth ``d`` lands only if ``d`` is at
    least the depth already stored, so equal depths resolve to the last writer.
    Coordinates are rounded to the nearest cell and anything outside the grid
    is silently ignored. A cell holds one glyph, which may span several code
    points (combining marks, emoji variation selectors); empty glyphs are
    not written.
    """

    def __init__(self, width: int, height: int, fill_char: str = " "):
        _check_size(width, height)
        self.width = int(width)
        self.height = int(height)
        if not fill_char:
            raise RasterError("Buffer fill_char must be a non-empty glyph")
        self.fill_char = fill_char
        self.clear()

    def clear(self, fill_char: str | None = None) -> None:
        fill = fill_char or self.fill_char
        shape = (self.height, self.width)
        self.chars = np.full(shape, fill, dtype=object)
        self.colors = np.full(shape, None, dtype=object)
        self.depth = np.full(shape, -np.inf)

    def resize(self, width: int, height: int) -> None:
        """Reallocate the grid, keeping glyphs and colours of the top-left overlap."""
        _check_size(width, height)
        old_chars, old_colors = self.chars, self.colors
        self.width, self.height = int(width), int(height)
        self.clear()
        rows = min(old_chars.shape[0], self.height)
        cols = min(old_chars.shape[1], self.width)
        self.chars[:rows, :cols] = old_chars[:rows, :cols]
        self.colors[:rows, :cols] = old_colors[:rows, :cols]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def set(self, x: float, y: float, char: str, color: str | None = None, depth: float = 0.0) -> None:
        x, y = to_cell(x), to_cell(y)
        if not self.in_bounds(x, y) or not char:
            return
        if depth >= self.depth[y, x]:
            self.chars[y, x] = char
            self.colors[y, x] = color
            self.depth[y, x] = depth

    def overwrite(self, x: float, y: float, char: str, color: str | None = None, depth: float = 0.0) -> None:
        """Write without the depth test. The stored depth never decreases."""
        x, y = to_cell(x), to_cell(y)
        if not self.in_bounds(x, y) or not char:
            return
        self.chars[y, x] = char
        self.colors[y, x] = color
        self.depth[y, x] = max(self.depth[y, x], depth)

    def get(self, x: float, y: float) -> str:
        x, y = to_cell(x), to_cell(y)
        if not self.in_bounds(x, y):
            return self.fill_char
        return str(self.chars[y, x])

    def get_color(self, x: float, y: float) -> str | None:
        x, y = to_cell(x), to_cell(y)
        if not self.in_bounds(x, y):
            return None
        return self.colors[y, x]

    def draw_text(self, x: float, y: float, text: str, color: str | None = None, depth: float = 0.0) -> None:
        for i, char in enumerate(text):
            self.set(x + i, y, char, color, depth)

    def copy_from(
        self,
        source: CharBuffer,
        src_x: int,
        src_y: int,
        dest_x: int,
        dest_y: int,
        width: int,
        height: int,
        depth: float = 0.0,
    ) -> None:
        """Blit a region of ``source``, treating this buffer's fill glyph as transparent."""
        for y in range(height):
            for x in range(width):
                char = source.get(src_x + x, src_y + y)
                if char != self.fill_char:
                    self.set(dest_x + x, dest_y + y, char, source.get_color(src_x + x, src_y + y), depth)

    def to_string(self) -> str:
        return "\n".join("".join(row) for row in self.chars)

    def __str__(self) -> str:
        return self.to_string()

    def to_array(self) -> list[list[str]]:
        return [[str(c) for c in row] for row in self.chars]

    def colour_runs(self) -> list[list[ColourRun]]:
        """Group each row into maximal runs of identically coloured glyphs."""
        rows = []
        for y in range(self.height):
            runs: list[ColourRun] = []
            current = self.colors[y, 0]
            start = 0
            for x in range(1, self.width):
                color = self.colors[y, x]
                if color != current:
                    runs.append((current, "".join(self.chars[y, start:x])))
                    current, start = color, x
            runs.append((current, "".join(self.chars[y, start:])))
            rows.append(runs)
        return rows

    def to_html(self) -> str:
        """Markup view with one ``<span>`` per coloured run."""
        lines = []
        for runs in self.colour_runs():
            parts = []
            for color, text in runs:
                text = html.escape(text, quote=False)
                parts.append(f'<span style="color:{color}">{text}</span>' if color else text)
            lines.append("".join(parts))
        return "\n".join(lines)
