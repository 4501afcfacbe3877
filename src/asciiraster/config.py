from dataclasses import dataclass

# Character cells are roughly twice as tall as they are wide
DEFAULT_ASPECT_RATIO = 2.0


@dataclass
class LineOptions:
    """Options for ``draw_line`` and polyline-based primitives.

    ``char=None`` picks a direction glyph from ``style`` for each cell.
    """

    char: str | None = None
    style: str = "single"
    color: str | None = None
    depth: float = 0.0


@dataclass
class AALineOptions:
    palette: str = "minimal"
    color: str | None = None
    depth: float = 0.0


@dataclass
class RectOptions:
    style: str = "single"
    color: str | None = None
    depth: float = 0.0


@dataclass
class FillRectOptions:
    """Options for ``fill_rect``. The border, when drawn, sits 0.1 above ``depth``."""

    fill_char: str = " "
    style: str = "single"
    border: bool = True
    color: str | None = None
    fill_color: str | None = None
    depth: float = 0.0


@dataclass
class ShapeOptions:
    char: str = "*"
    color: str | None = None
    depth: float = 0.0
    aspect_ratio: float = DEFAULT_ASPECT_RATIO


@dataclass
class FillOptions:
    fill_char: str = "█"
    color: str | None = None
    depth: float = 0.0
    aspect_ratio: float = DEFAULT_ASPECT_RATIO


@dataclass
class PolygonOptions:
    closed: bool = True
    style: str = "single"
    color: str | None = None
    depth: float = 0.0


@dataclass
class FloodFillOptions:
    """``target_char=None`` fills whatever glyph occupies the start cell."""

    target_char: str | None = None
    color: str | None = None
    depth: float = 0.0


@dataclass
class CurveOptions:
    """``segments=None`` uses 20 segments for quadratic and 30 for cubic curves."""

    char: str = "*"
    segments: int | None = None
    color: str | None = None
    depth: float = 0.0


@dataclass
class ArcOptions:
    char: str = "*"
    aspect_ratio: float = DEFAULT_ASPECT_RATIO
    color: str | None = None
    depth: float = 0.0


@dataclass
class GradientOptions:
    palette: str = "blocks"
    reverse: bool = False
    depth: float = 0.0


@dataclass
class DitherOptions:
    """Options for the dithering driver.

    ``levels=None`` derives the level count from the palette length.
    ``seed`` feeds the blue-noise hash (``None`` reads as 0) and seeds the
    random generator (``None`` draws fresh entropy). ``pattern`` names the
    matrix used by pattern dithering and ``noise_strength`` scales random
    dithering's noise.
    """

    algorithm: str = "bayer"
    palette: str = "standard"
    levels: int | None = None
    depth: float = 0.0
    seed: int | None = None
    pattern: str = "checker"
    noise_strength: float = 0.5


@dataclass
class HalftoneOptions:
    cell_size: int = 4
    shape: str = "circle"
