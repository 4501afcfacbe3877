from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from asciiraster.charsets import DEFAULT_PALETTE, DENSITY_PALETTES
from asciiraster.errors import PaletteError

logger = logging.getLogger(__name__)

UNKNOWN_DENSITY = 0.5


@dataclass(frozen=True)
class Palette:
    """An ordered run of glyphs discretising density in [0, 1].

    Index ``i`` of a palette of length ``n`` sits at density ``i / (n - 1)``.
    A one-glyph palette is allowed and maps every density to that glyph.
    """

    name: str
    chars: str

    def __post_init__(self):
        if len(self.chars) < 1:
            raise PaletteError(f"Palette {self.name!r} has no characters")

    def __len__(self) -> int:
        return len(self.chars)

    @property
    def levels(self) -> int:
        return len(self.chars)

    def index_for(self, density: float) -> int:
        last = len(self.chars) - 1
        density = min(1.0, max(0.0, density))
        # Round half up, not to even
        return min(last, int(math.floor(density * last + 0.5)))

    def char_for(self, density: float) -> str:
        return self.chars[self.index_for(density)]

    def density_of(self, char: str) -> float:
        index = self.chars.find(char)
        if index == -1:
            return UNKNOWN_DENSITY
        if len(self.chars) == 1:
            return 0.0
        return index / (len(self.chars) - 1)


def get_palette(palette: str | Palette | None = DEFAULT_PALETTE) -> Palette:
    """Resolve a palette name, falling back to the standard palette."""
    if isinstance(palette, Palette):
        return palette
    if palette not in DENSITY_PALETTES:
        logger.debug("Unknown palette %r, using %r", palette, DEFAULT_PALETTE)
        palette = DEFAULT_PALETTE
    return Palette(palette, DENSITY_PALETTES[palette])


def density_to_char(density: float, palette: str | Palette = DEFAULT_PALETTE) -> str:
    return get_palette(palette).char_for(density)


def char_to_density(char: str, palette: str | Palette = DEFAULT_PALETTE) -> float:
    """Density of a glyph within a palette; glyphs not in the palette read as 0.5."""
    return get_palette(palette).density_of(char)


def brightness_to_char(brightness: float, palette: str | Palette = DEFAULT_PALETTE, invert: bool = False) -> str:
    density = brightness / 255.0
    if invert:
        density = 1.0 - density
    return density_to_char(density, palette)


def densities_to_chars(field, palette: str | Palette = DEFAULT_PALETTE) -> np.ndarray:
    """Map a whole density field to glyphs. Returns a ``<U1`` array of the same shape."""
    pal = get_palette(palette)
    last = len(pal.chars) - 1
    values = np.clip(np.nan_to_num(np.asarray(field, dtype=np.float64)), 0.0, 1.0)
    indices = np.minimum(np.floor(values * last + 0.5).astype(np.intp), last)
    return np.array(list(pal.chars))[indices]


def brightness_to_char_map(brightness, palette: str | Palette = DEFAULT_PALETTE, invert: bool = False) -> list[str]:
    """Convert a grid of 0-255 brightness values to one string per row."""
    density = np.asarray(brightness, dtype=np.float64) / 255.0
    if invert:
        density = 1.0 - density
    chars = densities_to_chars(density, palette)
    return ["".join(row) for row in chars]
