import logging

logger = logging.getLogger(__name__)

# Density palettes, index 0 is the emptiest glyph unless the name says "reverse"
DENSITY_PALETTES = {
    "minimal": " .:-=+*#%@",
    "standard": " .'`^\",:;Il!i><~+_-?][}{1)(|/tfjrxnuvczXYUJCLQ0OZmwqpdbkhao*#MW&8%B@$",
    "extended": " .'`^\",:;Il!i><~+_-?][}{1)(|/\\tfjrxnuvczXYUJCLQ0OZmwqpdbkhao*#MW&8%B@$█",
    "blocks": " ░▒▓█",
    "dots": " ·∙●◉⬤",
    "simple": " .+*#",
    "binary": " █",
    "numeric": " 123456789",
    "alpha": " .oO0@",
    "reverseMinimal": "@%#*+=:-. ",
    "reverseBlocks": "█▓▒░ ",
}
DEFAULT_PALETTE = "standard"

# Keys every complete box style carries
BOX_PARTS = (
    "horizontal",
    "vertical",
    "top_left",
    "top_right",
    "bottom_left",
    "bottom_right",
    "tee_left",
    "tee_right",
    "tee_up",
    "tee_down",
    "cross",
)


def _box(glyphs: str) -> dict[str, str]:
    return dict(zip(BOX_PARTS, glyphs))


BOX_STYLES = {
    "single": _box("─│┌┐└┘┤├┴┬┼"),
    "double": _box("═║╔╗╚╝╣╠╩╦╬"),
    "rounded": _box("─│╭╮╰╯┤├┴┬┼"),
    "heavy": _box("━┃┏┓┗┛┫┣┻┳╋"),
    "ascii": _box("-|+++++++++"),
    # Partial styles: missing parts fall back to "single"
    "dashed": {"horizontal": "┄", "vertical": "┆"},
    "dotted": {"horizontal": "┈", "vertical": "┊"},
    "single_double_horizontal": dict(zip(BOX_PARTS[2:], "╒╕╘╛╡╞╧╤╪")),
    "single_double_vertical": dict(zip(BOX_PARTS[2:], "╓╖╙╜╢╟╨╥╫")),
}
DEFAULT_BOX_STYLE = "single"

DIAGONAL_FORWARD = "/"
DIAGONAL_BACKWARD = "\\"

# Heavy dashed glyphs have no style of their own but still count as box drawing
_BOX_DRAWING_CHARS = frozenset(c for style in BOX_STYLES.values() for c in style.values() if c not in "-|+") | {"┅", "┇"}

# Unicode ranges rendered two cells wide in a monospace grid
_WIDE_RANGES = (
    (0x1100, 0x115F),
    (0x2E80, 0x9FFF),
    (0xAC00, 0xD7AF),
    (0xF900, 0xFAFF),
    (0xFE10, 0xFE1F),
    (0xFE30, 0xFE6F),
    (0xFF00, 0xFF60),
    (0xFFE0, 0xFFE6),
)


def box_style(name: str | None) -> dict[str, str]:
    """Resolve a box style name to a complete part -> glyph mapping."""
    if name not in BOX_STYLES:
        logger.debug("Unknown box style %r, using %r", name, DEFAULT_BOX_STYLE)
        name = DEFAULT_BOX_STYLE
    return {**BOX_STYLES[DEFAULT_BOX_STYLE], **BOX_STYLES[name]}


# (up, right, down, left) bitmask -> box part
_JUNCTIONS = {
    1: "vertical",
    2: "horizontal",
    3: "bottom_left",
    4: "vertical",
    5: "vertical",
    6: "top_left",
    7: "tee_right",
    8: "horizontal",
    9: "bottom_right",
    10: "horizontal",
    11: "tee_up",
    12: "top_right",
    13: "tee_left",
    14: "tee_down",
    15: "cross",
}


def box_char(up: bool, right: bool, down: bool, left: bool, style: str = DEFAULT_BOX_STYLE) -> str:
    """Pick the junction glyph that connects the given sides."""
    mask = (1 if up else 0) | (2 if right else 0) | (4 if down else 0) | (8 if left else 0)
    if mask == 0:
        return " "
    return box_style(style)[_JUNCTIONS[mask]]


def is_box_drawing_char(char: str) -> bool:
    return char in _BOX_DRAWING_CHARS


def convert_box_style(text: str, from_style: str, to_style: str) -> str:
    """Swap the glyphs of one box style for the matching parts of another."""
    source = box_style(from_style)
    target = box_style(to_style)
    mapping = {source[part]: target[part] for part in BOX_PARTS}
    return "".join(mapping.get(c, c) for c in text)


def is_printable(char: str) -> bool:
    code = ord(char[0])
    return code >= 32 and code != 127


def char_width(char: str) -> int:
    code = ord(char[0])
    for lo, hi in _WIDE_RANGES:
        if lo <= code <= hi:
            return 2
    return 1
