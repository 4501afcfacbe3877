import argparse
import logging
import os
import sys
from pathlib import Path

from asciiraster.charsets import DENSITY_PALETTES
from asciiraster.config import DitherOptions
from asciiraster.converter import buffer_to_ansi, image_to_buffer
from asciiraster.dither import DitherAlgorithm

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FALLBACK_COLUMNS = 80


def terminal_columns() -> int:
    """Width of the attached terminal, or 80 when output is redirected."""
    if not sys.stdout.isatty():
        return FALLBACK_COLUMNS
    return os.get_terminal_size().columns


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render an image as dithered ASCII art")
    parser.add_argument("image", help="Path to input image")
    parser.add_argument(
        "-s", "--size", type=int, default=None, help="Output width in columns (default: terminal width)"
    )
    parser.add_argument(
        "-a",
        "--algorithm",
        default="bayer",
        choices=[a.value for a in DitherAlgorithm],
        help="Dithering algorithm (default: bayer)",
    )
    parser.add_argument(
        "-p", "--palette", default="standard", choices=sorted(DENSITY_PALETTES), help="Density palette"
    )
    parser.add_argument(
        "-l", "--levels", type=int, default=None, help="Quantisation levels (default: palette length)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for random and blue-noise dithering")
    parser.add_argument("-i", "--invert", action="store_true", default=False, help="Map bright pixels to sparse glyphs")
    parser.add_argument("-c", "--colour", action="store_true", default=False, help="Enable truecolor ANSI output")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Log debug output to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=LOG_FORMAT)

    image_path = Path(args.image)
    if not image_path.exists():
        print(f"File not found: {image_path}", file=sys.stderr)
        return 1

    width = args.size if args.size is not None else terminal_columns()
    options = DitherOptions(algorithm=args.algorithm, palette=args.palette, levels=args.levels, seed=args.seed)
    buffer = image_to_buffer(image_path, width=width, options=options, invert=args.invert, colour=args.colour)
    if buffer is None:
        return 0
    print(buffer_to_ansi(buffer) if args.colour else buffer.to_string())
    return 0


if __name__ == "__main__":
    sys.exit(main())
