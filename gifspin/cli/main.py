"""Main CLI entry point for gifspin-core.

Usage:
    gifspin-core WIDTH HEIGHT FRAME_COUNT FRAME_DELAY \\
        FLAG_CROP FLAG_REVERSE FLAG_FLATTEN BACKGROUND INPUT OUTPUT

    gifspin-core 256 256 36 40 1 0 0 0x00000000 logo.png logo.gif
"""

from __future__ import annotations

import argparse
import logging
import sys

from .. import __version__
from ..config import parse_flag, parse_int, validate_options
from ..exceptions import GifSpinError, ValidationError
from ..pipeline import spin

_INT_ARGS = ("width", "height", "frame_count", "frame_delay")
_FLAG_ARGS = ("flag_crop", "flag_reverse", "flag_flatten")


class _ArgumentParser(argparse.ArgumentParser):
    """Report usage errors as ``ValidationError`` (exit status 1)."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ValidationError(message)


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="gifspin-core",
        description="Spin a still image into a looping animated GIF.",
    )
    p.add_argument("--version", action="version", version=f"gifspin {__version__}")
    p.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Log progress (-v) or per-frame detail (-vv) to stderr",
    )
    p.add_argument("width", help="Canvas width in pixels (4-65535)")
    p.add_argument("height", help="Canvas height in pixels (4-65535)")
    p.add_argument("frame_count", help="Frames per full turn (1-2048)")
    p.add_argument("frame_delay", help="Milliseconds per frame (1-600000)")
    p.add_argument("flag_crop", help="Non-zero to crop to a centred square")
    p.add_argument("flag_reverse", help="Non-zero to spin the other way")
    p.add_argument("flag_flatten", help="Non-zero to flatten alpha onto the background")
    p.add_argument("background", help="Packed 0xRRGGBBAA background colour")
    p.add_argument("input", help="Source image")
    p.add_argument("output", help="Destination GIF")
    return p


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    try:
        args = build_parser().parse_args(argv)
        configure_logging(args.verbose)
        values = {name: parse_int(getattr(args, name), name) for name in _INT_ARGS}
        flags = {name: parse_flag(getattr(args, name), name) for name in _FLAG_ARGS}
        options = validate_options(
            **values, **flags,
            background=parse_int(args.background, "background"),
        )
        spin(options, args.input, args.output)
    except GifSpinError as exc:
        print(exc.diagnostic(), file=sys.stderr)
        return 1
    return 0


def cli_entry() -> None:
    sys.exit(main())
