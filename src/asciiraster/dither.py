"""Dithering: quantise continuous intensity into a bounded number of levels.

Two families live here. Positional algorithms (threshold, ordered/Bayer,
pattern, random, blue noise) decide each cell from its value and position
alone and are evaluated over whole numpy fields at once. Error diffusion
scans a private copy of the field row-major and pushes each cell's
quantisation error onto neighbours later in the scan.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from asciiraster.buffer import CharBuffer
from asciiraster.config import DitherOptions, HalftoneOptions
from asciiraster.palette import densities_to_chars, get_palette

logger = logging.getLogger(__name__)

BAYER_MATRICES = {
    "bayer2": np.array(
        [
            [0, 2],
            [3, 1],
        ]
    ),
    "bayer4": np.array(
        [
            [0, 8, 2, 10],
            [12, 4, 14, 6],
            [3, 11, 1, 9],
            [15, 7, 13, 5],
        ]
    ),
    "bayer8": np.array(
        [
            [0, 32, 8, 40, 2, 34, 10, 42],
            [48, 16, 56, 24, 50, 18, 58, 26],
            [12, 44, 4, 36, 14, 46, 6, 38],
            [60, 28, 52, 20, 62, 30, 54, 22],
            [3, 35, 11, 43, 1, 33, 9, 41],
            [51, 19, 59, 27, 49, 17, 57, 25],
            [15, 47, 7, 39, 13, 45, 5, 37],
            [63, 31, 55, 23, 61, 29, 53, 21],
        ]
    ),
}

HALFTONE_MATRICES = {
    "circle4": np.array(
        [
            [12, 5, 6, 13],
            [4, 0, 1, 7],
            [11, 3, 2, 8],
            [15, 10, 9, 14],
        ]
    ),
    "lines4": np.array(
        [
            [15, 11, 7, 3],
            [14, 10, 6, 2],
            [13, 9, 5, 1],
            [12, 8, 4, 0],
        ]
    ),
    "diamond4": np.array(
        [
            [8, 4, 8, 12],
            [4, 0, 4, 8],
            [8, 4, 8, 12],
            [12, 8, 12, 15],
        ]
    ),
}

# Stylised patterns; not threshold permutations
PATTERN_MATRICES = {
    "checker": np.array([[0, 1], [1, 0]]),
    "cross": np.array([[1, 0, 1], [0, 0, 0], [1, 0, 1]]),
    "diagonal": np.array([[0, 1, 2, 3], [1, 2, 3, 4], [2, 3, 4, 5], [3, 4, 5, 6]]),
    "hlines": np.array([[0], [1]]),
    "vlines": np.array([[0, 1]]),
}
DEFAULT_PATTERN = "checker"
DEFAULT_BAYER_SIZE = 4

FULL_BLOCK = "█"


class DitherAlgorithm(Enum):
    THRESHOLD = "threshold"
    BAYER = "bayer"
    BAYER2 = "bayer2"
    BAYER4 = "bayer4"
    BAYER8 = "bayer8"
    ORDERED = "ordered"
    FLOYD_STEINBERG = "floyd-steinberg"
    JARVIS = "jarvis"
    ATKINSON = "atkinson"
    SIERRA = "sierra"
    STUCKI = "stucki"
    PATTERN = "pattern"
    RANDOM = "random"
    BLUE_NOISE = "blue-noise"

    @classmethod
    def parse(cls, name: str | DitherAlgorithm | None) -> DitherAlgorithm:
        """Look up an algorithm by name or alias, defaulting to Bayer."""
        if isinstance(name, cls):
            return name
        name = _ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            logger.debug("Unknown dither algorithm %r, using bayer", name)
            return cls.BAYER


_ALIASES = {
    "none": "threshold",
    "floydSteinberg": "floyd-steinberg",
    "floyd_steinberg": "floyd-steinberg",
    "blueNoise": "blue-noise",
    "blue_noise": "blue-noise",
}


# --- Positional dithering ---


def _step(levels: int) -> float:
    return 1.0 / (max(2, int(levels)) - 1)


def _unwrap(result: np.ndarray):
    return float(result) if np.ndim(result) == 0 else result


def threshold_dither(value, levels: int = 2):
    """Plain quantisation: floor into ``levels`` equal bins."""
    step = 1.0 / max(1, int(levels))
    return _unwrap(np.floor(np.asarray(value, dtype=np.float64) / step) * step)


def _matrix_threshold(matrix: np.ndarray, x, y, bias: float = 0.0) -> np.ndarray:
    rows, cols = matrix.shape
    cells = np.asarray(matrix)[np.asarray(y) % rows, np.asarray(x) % cols]
    return (cells + bias) / (rows * cols)


def _bump(value, threshold, levels: int):
    """Quantise down a level, then up one if the remainder beats the threshold."""
    value = np.asarray(value, dtype=np.float64)
    step = _step(levels)
    base = np.floor(value / step) * step
    remainder = (value - base) / step
    return _unwrap(np.where(remainder > threshold, np.minimum(1.0, base + step), base))


def ordered_dither(value, x, y, matrix, levels: int = 2):
    """Ordered dithering against any square threshold matrix, centre-biased."""
    return _bump(value, _matrix_threshold(np.asarray(matrix), x, y, bias=0.5), levels)


def bayer_dither(value, x, y, size: int | str = DEFAULT_BAYER_SIZE, levels: int = 2):
    matrix = BAYER_MATRICES.get(f"bayer{size}")
    if matrix is None:
        logger.debug("No %sx%s Bayer matrix, using 4x4", size, size)
        matrix = BAYER_MATRICES["bayer4"]
    return _bump(value, _matrix_threshold(matrix, x, y), levels)


def pattern_matrix(name: str | None) -> np.ndarray:
    if name in PATTERN_MATRICES:
        return PATTERN_MATRICES[name]
    if name in HALFTONE_MATRICES:
        return HALFTONE_MATRICES[name]
    logger.debug("Unknown pattern %r, using %r", name, DEFAULT_PATTERN)
    return PATTERN_MATRICES[DEFAULT_PATTERN]


def pattern_dither(value, x, y, pattern: str = DEFAULT_PATTERN):
    """Two-level dithering against a stylised pattern or halftone matrix."""
    matrix = pattern_matrix(pattern)
    rows, cols = matrix.shape
    peak = matrix.max() or 1
    threshold = matrix[np.asarray(y) % rows, np.asarray(x) % cols] / peak
    return _unwrap(np.where(np.asarray(value) > threshold, 1.0, 0.0))


def random_dither(value, strength: float = 0.5, rng: np.random.Generator | None = None):
    rng = rng if rng is not None else np.random.default_rng()
    value = np.asarray(value, dtype=np.float64)
    noise = (rng.random(value.shape) - 0.5) * strength
    return _unwrap(np.where(np.clip(value + noise, 0.0, 1.0) > 0.5, 1.0, 0.0))


_M32 = np.uint64(0xFFFFFFFF)


def noise_threshold(x, y, seed: int = 0):
    """Deterministic per-cell threshold in [0, 1) from a 32-bit integer hash."""
    shape = np.broadcast(np.asarray(x), np.asarray(y)).shape
    xs = np.atleast_1d(np.asarray(x, dtype=np.int64)).astype(np.uint64)
    ys = np.atleast_1d(np.asarray(y, dtype=np.int64)).astype(np.uint64)
    s = np.uint64(seed & 0xFFFFFFFF)

    h = np.full(np.broadcast(xs, ys).shape, s, dtype=np.uint64)
    h ^= (xs * np.uint64(374761393)) & _M32
    h ^= (ys * np.uint64(668265263)) & _M32
    h ^= (s * np.uint64(2147483647)) & _M32
    h = ((h ^ (h >> np.uint64(15))) * np.uint64(2246822519)) & _M32
    h = ((h ^ (h >> np.uint64(13))) * np.uint64(3266489917)) & _M32
    h = (h ^ (h >> np.uint64(16))) & _M32
    return _unwrap((h / 4294967296.0).reshape(shape))


def blue_noise_dither(value, x, y, seed: int = 0):
    return _unwrap(np.where(np.asarray(value) > noise_threshold(x, y, seed), 1.0, 0.0))


# --- Error diffusion ---


@dataclass(frozen=True)
class DiffusionKernel:
    """Error shares as (dx, dy, weight) over a common divisor. dy is never negative."""

    name: str
    offsets: tuple[tuple[int, int, int], ...]
    divisor: int

    @property
    def retained(self) -> float:
        """Fraction of each cell's error that the kernel passes on."""
        return sum(w for _, _, w in self.offsets) / self.divisor


FLOYD_STEINBERG = DiffusionKernel(
    "floyd-steinberg",
    ((1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1)),
    16,
)
JARVIS = DiffusionKernel(
    "jarvis",
    (
        (1, 0, 7), (2, 0, 5),
        (-2, 1, 3), (-1, 1, 5), (0, 1, 7), (1, 1, 5), (2, 1, 3),
        (-2, 2, 1), (-1, 2, 3), (0, 2, 5), (1, 2, 3), (2, 2, 1),
    ),
    48,
)  # fmt: skip
# Passes on only 6/8 of the error, so output comes out lighter
ATKINSON = DiffusionKernel(
    "atkinson",
    ((1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1)),
    8,
)
SIERRA = DiffusionKernel(
    "sierra",
    (
        (1, 0, 5), (2, 0, 3),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 5), (1, 1, 4), (2, 1, 2),
        (-1, 2, 2), (0, 2, 3), (1, 2, 2),
    ),
    32,
)  # fmt: skip
STUCKI = DiffusionKernel(
    "stucki",
    (
        (1, 0, 8), (2, 0, 4),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2),
        (-2, 2, 1), (-1, 2, 2), (0, 2, 4), (1, 2, 2), (2, 2, 1),
    ),
    42,
)  # fmt: skip

KERNELS = {k.name: k for k in (FLOYD_STEINBERG, JARVIS, ATKINSON, SIERRA, STUCKI)}


@dataclass
class DiffusionResult:
    """Quantised field plus the error that never landed in it.

    ``residual`` collects shares that fell off the field's edges and, for
    kernels retaining less than the full error, the discarded remainder, so
    ``original.sum() == values.sum() + residual``.
    """

    values: np.ndarray
    residual: float


def error_diffusion(values, levels: int = 2, kernel: DiffusionKernel = FLOYD_STEINBERG) -> DiffusionResult:
    """Row-major error diffusion over a private copy of ``values``."""
    field = np.array(values, dtype=np.float64, ndmin=2)
    if field.size == 0:
        return DiffusionResult(field, 0.0)

    height, width = field.shape
    step = _step(levels)
    dropped = 1.0 - kernel.retained
    shares = [(dx, dy, w / kernel.divisor) for dx, dy, w in kernel.offsets]
    rows = field.tolist()
    residual = 0.0

    for y in range(height):
        row = rows[y]
        for x in range(width):
            old = row[x]
            new = min(1.0, max(0.0, math.floor(old / step + 0.5) * step))
            row[x] = new
            error = old - new
            if error == 0.0:
                continue
            residual += error * dropped
            for dx, dy, share in shares:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and ny < height:
                    rows[ny][nx] += error * share
                else:
                    residual += error * share

    return DiffusionResult(np.array(rows, dtype=np.float64), residual)


def floyd_steinberg_dither(values, levels: int = 2) -> np.ndarray:
    return error_diffusion(values, levels, FLOYD_STEINBERG).values


def jarvis_dither(values, levels: int = 2) -> np.ndarray:
    return error_diffusion(values, levels, JARVIS).values


def atkinson_dither(values, levels: int = 2) -> np.ndarray:
    return error_diffusion(values, levels, ATKINSON).values


def sierra_dither(values, levels: int = 2) -> np.ndarray:
    return error_diffusion(values, levels, SIERRA).values


def stucki_dither(values, levels: int = 2) -> np.ndarray:
    return error_diffusion(values, levels, STUCKI).values


# --- Driver ---

_DIFFUSERS = {
    DitherAlgorithm.FLOYD_STEINBERG: FLOYD_STEINBERG,
    DitherAlgorithm.JARVIS: JARVIS,
    DitherAlgorithm.ATKINSON: ATKINSON,
    DitherAlgorithm.SIERRA: SIERRA,
    DitherAlgorithm.STUCKI: STUCKI,
}

_BAYER_SIZES = {
    DitherAlgorithm.BAYER: DEFAULT_BAYER_SIZE,
    DitherAlgorithm.BAYER2: 2,
    DitherAlgorithm.BAYER4: 4,
    DitherAlgorithm.BAYER8: 8,
}


def dither_field(values, options: DitherOptions | None = None) -> np.ndarray:
    """Quantise an intensity field with the configured algorithm.

    The level count comes from the palette length unless ``levels`` is set.
    Returns a new array; ``values`` is never modified.
    """
    opts = options or DitherOptions()
    field = np.array(values, dtype=np.float64, ndmin=2)
    if field.size == 0:
        return field

    algorithm = DitherAlgorithm.parse(opts.algorithm)
    levels = opts.levels or get_palette(opts.palette).levels
    ys, xs = np.indices(field.shape)

    if algorithm in _DIFFUSERS:
        return error_diffusion(field, levels, _DIFFUSERS[algorithm]).values
    if algorithm in _BAYER_SIZES:
        return bayer_dither(field, xs, ys, _BAYER_SIZES[algorithm], levels)
    if algorithm is DitherAlgorithm.ORDERED:
        return ordered_dither(field, xs, ys, BAYER_MATRICES["bayer4"], levels)
    if algorithm is DitherAlgorithm.PATTERN:
        return pattern_dither(field, xs, ys, opts.pattern)
    if algorithm is DitherAlgorithm.RANDOM:
        return random_dither(field, opts.noise_strength, np.random.default_rng(opts.seed))
    if algorithm is DitherAlgorithm.BLUE_NOISE:
        return blue_noise_dither(field, xs, ys, opts.seed or 0)
    return threshold_dither(field, levels)


def dither_to_ascii(values, options: DitherOptions | None = None) -> list[str]:
    """Dither an intensity field and map it through the palette, one string per row."""
    opts = options or DitherOptions()
    dithered = dither_field(values, opts)
    chars = densities_to_chars(np.clip(dithered, 0.0, 1.0), opts.palette)
    return ["".join(row) for row in chars]


def apply_dither_to_buffer(buffer: CharBuffer, values, options: DitherOptions | None = None) -> None:
    opts = options or DitherOptions()
    for y, row in enumerate(dither_to_ascii(values, opts)):
        if y >= buffer.height:
            break
        for x, char in enumerate(row[: buffer.width]):
            buffer.set(x, y, char, None, opts.depth)


def create_gradient(width: int, height: int, direction: str = "horizontal") -> np.ndarray:
    """Synthetic intensity field for previews and tests."""
    ys, xs = np.indices((height, width), dtype=np.float64)
    if direction == "horizontal":
        return xs / (width - 1) if width > 1 else np.zeros_like(xs)
    if direction == "vertical":
        return ys / (height - 1) if height > 1 else np.zeros_like(ys)
    if direction == "diagonal":
        span = width + height - 2
        return (xs + ys) / span if span > 0 else np.zeros_like(xs)
    if direction == "radial":
        cx, cy = width / 2, height / 2
        return np.hypot(xs - cx, ys - cy) / (math.hypot(cx, cy) or 1.0)
    logger.debug("Unknown gradient direction %r, using flat 0.5", direction)
    return np.full((height, width), 0.5)


# --- Halftone ---


def halftone_char(value: float, x: int, y: int, cell_size: int = 4, shape: str = "circle") -> str:
    """Full block when the cell lies inside a dot whose size tracks ``value``."""
    cx = x % cell_size
    cy = y % cell_size
    center = cell_size / 2
    if shape == "square":
        dist = max(abs(cx - center), abs(cy - center))
    elif shape == "diamond":
        dist = abs(cx - center) + abs(cy - center)
    else:
        dist = math.hypot(cx - center, cy - center)
    max_dist = center * 2 if shape == "diamond" else center * math.sqrt(2)
    return FULL_BLOCK if dist < value * max_dist else " "


def apply_halftone(values, options: HalftoneOptions | None = None) -> list[str]:
    opts = options or HalftoneOptions()
    field = np.array(values, dtype=np.float64, ndmin=2)
    return [
        "".join(halftone_char(v, x, y, opts.cell_size, opts.shape) for x, v in enumerate(row))
        for y, row in enumerate(field.tolist())
    ]
