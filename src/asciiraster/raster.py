"""Primitive rasterisation onto a ``CharBuffer``.

Every primitive writes through the buffer's bounds-checked, depth-tested
``set`` (flood fill excepted), so a shape partly or wholly off the grid is
clipped rather than rejected, and degenerate sizes draw nothing.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from asciiraster.buffer import CharBuffer, to_cell
from asciiraster.charsets import DIAGONAL_BACKWARD, DIAGONAL_FORWARD, box_style
from asciiraster.config import (
    AALineOptions,
    ArcOptions,
    CurveOptions,
    FillOptions,
    FillRectOptions,
    FloodFillOptions,
    GradientOptions,
    LineOptions,
    PolygonOptions,
    RectOptions,
    ShapeOptions,
)
from asciiraster.palette import get_palette

logger = logging.getLogger(__name__)

Point = tuple[float, float]

QUADRATIC_SEGMENTS = 20
CUBIC_SEGMENTS = 30
FILLED_BORDER_LIFT = 0.1


# --- Lines ---


def bresenham_line(x0: float, y0: float, x1: float, y1: float) -> list[tuple[int, int]]:
    """Cells on the integer line between two rounded endpoints, start to end.

    The walk always runs from the lesser endpoint so both directions cover
    the same cells.
    """
    start = (to_cell(x0), to_cell(y0))
    end = (to_cell(x1), to_cell(y1))
    if end < start:
        return _bresenham(*end, *start)[::-1]
    return _bresenham(*start, *end)


def _bresenham(x0: int, y0: int, x1: int, y1: int) -> list[tuple[int, int]]:
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    points = []
    while True:
        points.append((x0, y0))
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy
    return points


def line_char(dx: int, dy: int, style: str = "single") -> str:
    """Glyph for a line heading in direction (dx, dy); y grows downwards."""
    if dy == 0:
        return box_style(style)["horizontal"]
    if dx == 0:
        return box_style(style)["vertical"]
    if (dx > 0) == (dy > 0):
        return DIAGONAL_BACKWARD
    return DIAGONAL_FORWARD


def draw_line(buffer: CharBuffer, x0: float, y0: float, x1: float, y1: float, options: LineOptions | None = None):
    opts = options or LineOptions()
    points = bresenham_line(x0, y0, x1, y1)
    last = len(points) - 1
    for i, (x, y) in enumerate(points):
        char = opts.char
        if not char:
            prev_x, prev_y = points[max(i - 1, 0)]
            next_x, next_y = points[min(i + 1, last)]
            char = line_char(next_x - prev_x, next_y - prev_y, opts.style)
        buffer.set(x, y, char, opts.color, opts.depth)


def _fpart(v: float) -> float:
    return v - math.floor(v)


def draw_line_aa(
    buffer: CharBuffer, x0: float, y0: float, x1: float, y1: float, options: AALineOptions | None = None
) -> None:
    """Xiaolin Wu antialiased line, coverage mapped to palette density.

    The four endpoint cells are plotted after the interior so they win ties
    with any interior write to the same cell. Of each endpoint pair, the cell
    nearest the true endpoint is drawn at full coverage.
    """
    opts = options or AALineOptions()
    palette = get_palette(opts.palette)

    steep = abs(y1 - y0) > abs(x1 - x0)
    if steep:
        x0, y0, x1, y1 = y0, x0, y1, x1
    if x0 > x1:
        x0, x1, y0, y1 = x1, x0, y1, y0

    dx = x1 - x0
    gradient = 1.0 if dx == 0 else (y1 - y0) / dx

    def plot(x: int, y: int, coverage: float) -> None:
        char = palette.char_for(coverage)
        if steep:
            buffer.set(y, x, char, opts.color, opts.depth)
        else:
            buffer.set(x, y, char, opts.color, opts.depth)

    xpxl1 = to_cell(x0)
    yend1 = y0 + gradient * (xpxl1 - x0)
    xpxl2 = to_cell(x1)
    yend2 = y1 + gradient * (xpxl2 - x1)
    endpoints = ((xpxl1, yend1, 1.0 - _fpart(x0 + 0.5)), (xpxl2, yend2, _fpart(x1 + 0.5)))

    intery = yend1 + gradient
    for x in range(xpxl1 + 1, xpxl2):
        base = math.floor(intery)
        frac = intery - base
        plot(x, base, 1.0 - frac)
        plot(x, base + 1, frac)
        intery += gradient

    for xpxl, yend, gap in endpoints:
        base = math.floor(yend)
        frac = yend - base
        near, far = (base, base + 1) if frac < 0.5 else (base + 1, base)
        plot(xpxl, far, min(frac, 1.0 - frac) * gap)
        plot(xpxl, near, 1.0)


# --- Rectangles ---


def draw_rect(buffer: CharBuffer, x: float, y: float, width: float, height: float, options: RectOptions | None = None):
    opts = options or RectOptions()
    box = box_style(opts.style)
    x, y, width, height = to_cell(x), to_cell(y), to_cell(width), to_cell(height)
    if width < 1 or height < 1:
        return

    put = buffer.set
    if width == 1 and height == 1:
        put(x, y, box["cross"], opts.color, opts.depth)
        return

    right = x + width - 1
    bottom = y + height - 1
    for i in range(1, width - 1):
        put(x + i, y, box["horizontal"], opts.color, opts.depth)
        put(x + i, bottom, box["horizontal"], opts.color, opts.depth)
    for i in range(1, height - 1):
        put(x, y + i, box["vertical"], opts.color, opts.depth)
        put(right, y + i, box["vertical"], opts.color, opts.depth)

    put(x, y, box["top_left"], opts.color, opts.depth)
    put(right, y, box["top_right"], opts.color, opts.depth)
    put(x, bottom, box["bottom_left"], opts.color, opts.depth)
    put(right, bottom, box["bottom_right"], opts.color, opts.depth)


def fill_rect(
    buffer: CharBuffer, x: float, y: float, width: float, height: float, options: FillRectOptions | None = None
) -> None:
    opts = options or FillRectOptions()
    x, y, width, height = to_cell(x), to_cell(y), to_cell(width), to_cell(height)
    if width < 1 or height < 1:
        return

    inset = 1 if opts.border else 0
    for iy in range(y + inset, y + height - inset):
        for ix in range(x + inset, x + width - inset):
            buffer.set(ix, iy, opts.fill_char, opts.fill_color, opts.depth)

    if opts.border:
        border = RectOptions(style=opts.style, color=opts.color, depth=opts.depth + FILLED_BORDER_LIFT)
        draw_rect(buffer, x, y, width, height, border)


# --- Ellipses and arcs ---


def draw_ellipse(buffer: CharBuffer, cx: float, cy: float, rx: float, ry: float, options: ShapeOptions | None = None):
    """Midpoint ellipse outline, four symmetric cells per step."""
    opts = options or ShapeOptions()
    cx, cy, rx, ry = to_cell(cx), to_cell(cy), to_cell(rx), to_cell(ry)
    if rx <= 0 or ry <= 0:
        return

    def plot4(x: int, y: int) -> None:
        for px, py in ((cx + x, cy + y), (cx - x, cy + y), (cx + x, cy - y), (cx - x, cy - y)):
            buffer.set(px, py, opts.char, opts.color, opts.depth)

    rx2, ry2 = rx * rx, ry * ry
    x, y = 0, ry
    px, py = 0, 2 * rx2 * y
    plot4(x, y)

    # Region 1: slope shallower than -1, step along x
    p = to_cell(ry2 - rx2 * ry + 0.25 * rx2)
    while px < py:
        x += 1
        px += 2 * ry2
        if p < 0:
            p += ry2 + px
        else:
            y -= 1
            py -= 2 * rx2
            p += ry2 + px - py
        plot4(x, y)

    # Region 2: step along y
    p = to_cell(ry2 * (x + 0.5) ** 2 + rx2 * (y - 1) ** 2 - rx2 * ry2)
    while y > 0:
        y -= 1
        py -= 2 * rx2
        if p > 0:
            p += rx2 - py
        else:
            x += 1
            px += 2 * ry2
            p += rx2 - py + px
        plot4(x, y)


def draw_circle(buffer: CharBuffer, cx: float, cy: float, radius: float, options: ShapeOptions | None = None):
    opts = options or ShapeOptions()
    draw_ellipse(buffer, cx, cy, to_cell(radius * opts.aspect_ratio), radius, opts)


def ellipse_fill_cells(cx: float, cy: float, rx: float, ry: float) -> list[tuple[int, int]]:
    """Cells of the bounding box whose offset satisfies (x/rx)^2 + (y/ry)^2 <= 1."""
    cx, cy, rx, ry = to_cell(cx), to_cell(cy), to_cell(rx), to_cell(ry)
    if rx <= 0 or ry <= 0:
        return []
    ys, xs = np.mgrid[-ry : ry + 1, -rx : rx + 1]
    inside = xs * xs * ry * ry + ys * ys * rx * rx <= rx * rx * ry * ry
    return [(cx + int(x), cy + int(y)) for x, y in zip(xs[inside], ys[inside])]


def fill_ellipse(buffer: CharBuffer, cx: float, cy: float, rx: float, ry: float, options: FillOptions | None = None):
    opts = options or FillOptions()
    for x, y in ellipse_fill_cells(cx, cy, rx, ry):
        buffer.set(x, y, opts.fill_char, opts.color, opts.depth)


def fill_circle(buffer: CharBuffer, cx: float, cy: float, radius: float, options: FillOptions | None = None):
    opts = options or FillOptions()
    fill_ellipse(buffer, cx, cy, to_cell(radius * opts.aspect_ratio), radius, opts)


def arc_segments(radius: float, span: float) -> int:
    """Chord count for an arc: at least 10, about one per two cells of arc length."""
    return max(10, math.ceil(abs(span) * radius / 2))


def draw_arc(
    buffer: CharBuffer,
    cx: float,
    cy: float,
    radius: float,
    start_angle: float,
    end_angle: float,
    options: ArcOptions | None = None,
) -> None:
    """Arc of a circle between two angles in radians, flattened into lines."""
    opts = options or ArcOptions()
    if radius <= 0:
        return
    rx = radius * opts.aspect_ratio
    ry = radius
    span = end_angle - start_angle
    segments = arc_segments(radius, span)

    prev_x = cx + rx * math.cos(start_angle)
    prev_y = cy + ry * math.sin(start_angle)
    buffer.set(prev_x, prev_y, opts.char, opts.color, opts.depth)

    line = LineOptions(char=opts.char, color=opts.color, depth=opts.depth)
    for i in range(1, segments + 1):
        angle = start_angle + span * (i / segments)
        x = cx + rx * math.cos(angle)
        y = cy + ry * math.sin(angle)
        draw_line(buffer, prev_x, prev_y, x, y, line)
        prev_x, prev_y = x, y


# --- Polygons ---


def draw_polygon(buffer: CharBuffer, points: Sequence[Point], options: PolygonOptions | None = None) -> None:
    opts = options or PolygonOptions()
    if len(points) < 2:
        return
    line = LineOptions(style=opts.style, color=opts.color, depth=opts.depth)
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        draw_line(buffer, x0, y0, x1, y1, line)
    if opts.closed and len(points) > 2:
        (x0, y0), (x1, y1) = points[-1], points[0]
        draw_line(buffer, x0, y0, x1, y1, line)


def scanline_spans(points: Sequence[Point], y: int) -> list[tuple[float, float]]:
    """Even-odd spans of the polygon on row ``y``.

    An edge counts when it strictly crosses the row with its lower endpoint
    included, so shared vertices are not counted twice.
    """
    crossings = []
    n = len(points)
    for i in range(n):
        (x1, y1), (x2, y2) = points[i], points[(i + 1) % n]
        if (y1 <= y < y2) or (y2 <= y < y1):
            crossings.append(x1 + (y - y1) / (y2 - y1) * (x2 - x1))
    crossings.sort()
    return list(zip(crossings[0::2], crossings[1::2]))


def fill_polygon(buffer: CharBuffer, points: Sequence[Point], options: FillOptions | None = None) -> None:
    opts = options or FillOptions()
    if len(points) < 3:
        return
    min_y = max(0, min(math.floor(y) for _, y in points))
    max_y = min(buffer.height - 1, max(math.ceil(y) for _, y in points))

    for y in range(min_y, max_y + 1):
        for left, right in scanline_spans(points, y):
            start = max(0, math.ceil(left))
            end = min(buffer.width - 1, math.floor(right))
            for x in range(start, end + 1):
                buffer.set(x, y, opts.fill_char, opts.color, opts.depth)


# --- Flood fill ---


def flood_fill(
    buffer: CharBuffer, start_x: float, start_y: float, fill_char: str, options: FloodFillOptions | None = None
) -> int:
    """4-connected bucket fill from a start cell. Returns the number of cells changed.

    Matching cells are overwritten regardless of their stored depth.
    """
    opts = options or FloodFillOptions()
    start_x, start_y = to_cell(start_x), to_cell(start_y)
    if not buffer.in_bounds(start_x, start_y):
        return 0

    target = opts.target_char or buffer.get(start_x, start_y)
    if not fill_char or target == fill_char:
        return 0

    visited = np.zeros((buffer.height, buffer.width), dtype=bool)
    stack = [(start_x, start_y)]
    filled = 0
    while stack:
        x, y = stack.pop()
        if not buffer.in_bounds(x, y) or visited[y, x]:
            continue
        if buffer.chars[y, x] != target:
            continue
        visited[y, x] = True
        buffer.overwrite(x, y, fill_char, opts.color, opts.depth)
        filled += 1
        stack.extend(((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)))
    logger.debug("Flood fill from (%d, %d) changed %d cells", start_x, start_y, filled)
    return filled


# --- Curves ---


def _polyline(buffer: CharBuffer, points: list[Point], opts: CurveOptions) -> None:
    line = LineOptions(char=opts.char, color=opts.color, depth=opts.depth)
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        draw_line(buffer, x0, y0, x1, y1, line)


def quadratic_bezier_points(p0: Point, p1: Point, p2: Point, segments: int = QUADRATIC_SEGMENTS) -> list[Point]:
    segments = max(1, segments)
    points = []
    for i in range(segments + 1):
        t = i / segments
        mt = 1 - t
        a, b, c = mt * mt, 2 * mt * t, t * t
        points.append((a * p0[0] + b * p1[0] + c * p2[0], a * p0[1] + b * p1[1] + c * p2[1]))
    return points


def cubic_bezier_points(p0: Point, p1: Point, p2: Point, p3: Point, segments: int = CUBIC_SEGMENTS) -> list[Point]:
    segments = max(1, segments)
    points = []
    for i in range(segments + 1):
        t = i / segments
        mt = 1 - t
        a, b, c, d = mt**3, 3 * mt * mt * t, 3 * mt * t * t, t**3
        points.append(
            (
                a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
                a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
            )
        )
    return points


def draw_quadratic_bezier(
    buffer: CharBuffer, p0: Point, p1: Point, p2: Point, options: CurveOptions | None = None
) -> None:
    opts = options or CurveOptions()
    segments = opts.segments if opts.segments is not None else QUADRATIC_SEGMENTS
    _polyline(buffer, quadratic_bezier_points(p0, p1, p2, segments), opts)


def draw_cubic_bezier(
    buffer: CharBuffer, p0: Point, p1: Point, p2: Point, p3: Point, options: CurveOptions | None = None
) -> None:
    opts = options or CurveOptions()
    segments = opts.segments if opts.segments is not None else CUBIC_SEGMENTS
    _polyline(buffer, cubic_bezier_points(p0, p1, p2, p3, segments), opts)


# --- Gradient and pattern fills ---


def _ramp(i: int, n: int) -> float:
    return i / (n - 1) if n > 1 else 0.0


def fill_gradient_h(
    buffer: CharBuffer, x: int, y: int, width: int, height: int, options: GradientOptions | None = None
) -> None:
    """Left-to-right density ramp, emptiest glyph on the left unless reversed."""
    opts = options or GradientOptions()
    palette = get_palette(opts.palette)
    for ix in range(width):
        density = _ramp(ix, width)
        char = palette.char_for(1.0 - density if opts.reverse else density)
        for iy in range(height):
            buffer.set(x + ix, y + iy, char, None, opts.depth)


def fill_gradient_v(
    buffer: CharBuffer, x: int, y: int, width: int, height: int, options: GradientOptions | None = None
) -> None:
    opts = options or GradientOptions()
    palette = get_palette(opts.palette)
    for iy in range(height):
        density = _ramp(iy, height)
        char = palette.char_for(1.0 - density if opts.reverse else density)
        for ix in range(width):
            buffer.set(x + ix, y + iy, char, None, opts.depth)


def fill_pattern(
    buffer: CharBuffer, x: int, y: int, width: int, height: int, pattern: Sequence[str], depth: float = 0.0
) -> None:
    """Tile a block of text rows across a rectangle."""
    if not pattern:
        return
    for iy in range(height):
        row = pattern[iy % len(pattern)]
        if not row:
            continue
        for ix in range(width):
            buffer.set(x + ix, y + iy, row[ix % len(row)], None, depth)
