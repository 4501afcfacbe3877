from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image

from asciiraster.buffer import CharBuffer
from asciiraster.config import DEFAULT_ASPECT_RATIO, DitherOptions
from asciiraster.dither import dither_to_ascii

logger = logging.getLogger(__name__)


def _open(image: Image.Image | str | Path) -> Image.Image:
    if not isinstance(image, Image.Image):
        image = Image.open(image)
    return image.convert("RGB")


def _grid_size(image: Image.Image, width: int | None, cell_aspect: float) -> tuple[int, int]:
    cols = width if width is not None else image.width
    # Cells are taller than wide; squash rows so output isn't stretched
    rows = int(image.height * cols / image.width / cell_aspect)
    return cols, rows


def image_to_brightness(
    image: Image.Image | str | Path, width: int | None = None, cell_aspect: float = DEFAULT_ASPECT_RATIO
) -> np.ndarray:
    """Resample an image to one grey value (0-255) per character cell."""
    image = _open(image)
    cols, rows = _grid_size(image, width, cell_aspect)
    if rows <= 0 or cols <= 0:
        return np.zeros((0, 0))
    gray = image.convert("L").resize((cols, rows), Image.LANCZOS)
    return np.asarray(gray, dtype=np.float64)


def sample_cell_colours(
    image: Image.Image | str | Path, width: int | None = None, cell_aspect: float = DEFAULT_ASPECT_RATIO
) -> np.ndarray:
    """Mean colour of each character cell as ``#rrggbb`` tokens, shape (rows, cols)."""
    image = _open(image)
    cols, rows = _grid_size(image, width, cell_aspect)
    if rows <= 0 or cols <= 0:
        return np.empty((0, 0), dtype=object)

    arr = np.asarray(image, dtype=np.float64)
    # Pixel rows/cols belonging to each cell, then average per cell
    row_edges = np.linspace(0, arr.shape[0], rows + 1).astype(int)
    col_edges = np.linspace(0, arr.shape[1], cols + 1).astype(int)
    row_sums = np.add.reduceat(arr, row_edges[:-1], axis=0)
    sums = np.add.reduceat(row_sums, col_edges[:-1], axis=1)
    counts = np.outer(np.diff(row_edges), np.diff(col_edges))[:, :, None]
    means = np.clip(sums / np.maximum(counts, 1), 0, 255).astype(np.uint8)

    tokens = np.empty((rows, cols), dtype=object)
    for r in range(rows):
        for c in range(cols):
            red, green, blue = means[r, c]
            tokens[r, c] = f"#{red:02x}{green:02x}{blue:02x}"
    return tokens


def image_to_buffer(
    image: Image.Image | str | Path,
    width: int | None = None,
    options: DitherOptions | None = None,
    invert: bool = False,
    colour: bool = False,
    cell_aspect: float = DEFAULT_ASPECT_RATIO,
) -> CharBuffer | None:
    """Dither an image into a new buffer. Returns None if it is smaller than one cell.

    Bright pixels map to dense glyphs, as suits a dark terminal, unless
    ``invert`` is set.
    """
    opts = options or DitherOptions()
    image = _open(image)
    brightness = image_to_brightness(image, width, cell_aspect)
    if brightness.size == 0:
        logger.debug("Image %dx%d is smaller than one cell", image.width, image.height)
        return None

    density = brightness / 255.0
    if invert:
        density = 1.0 - density
    rows = dither_to_ascii(density, opts)

    buffer = CharBuffer(brightness.shape[1], brightness.shape[0])
    colours = sample_cell_colours(image, width, cell_aspect) if colour else None
    for y, row in enumerate(rows):
        for x, char in enumerate(row):
            buffer.set(x, y, char, colours[y, x] if colours is not None else None, opts.depth)
    return buffer


def _ansi_colour(token: str) -> str:
    value = token.lstrip("#")
    red, green, blue = int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    return f"\033[38;2;{red};{green};{blue}m"


def buffer_to_ansi(buffer: CharBuffer) -> str:
    """Truecolor terminal output with one escape per colour run."""
    out = []
    for runs in buffer.colour_runs():
        parts = []
        for color, text in runs:
            parts.append(f"{_ansi_colour(color)}{text}\033[0m" if color else text)
        out.append("".join(parts))
    return "\n".join(out)
