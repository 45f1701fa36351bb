"""
End-to-end spin pipeline.

    load -> sRGB -> canvas plan -> composition -> frames -> GIF

Each stage returns a new image; nothing is written to the destination until
the encoder succeeds.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from PIL import Image

from gifspin import imaging
from gifspin.assembly import AnimationAssembler, FrameDelay, OutputConfig
from gifspin.composition import prepare_source
from gifspin.frames import render_frames
from gifspin.geometry import plan_canvas
from gifspin.types import Options

logger = logging.getLogger(__name__)


def load_source(path: str | os.PathLike) -> Image.Image:
    """Decode *path*, drop its metadata and bring it to 8-bit sRGB."""
    img = imaging.decode(path)
    img = imaging.strip_metadata(img)
    return imaging.to_srgb(img)


def spin_image(img: Image.Image, options: Options, output_path: str | os.PathLike) -> Path:
    """Run the planners and encoder on an already loaded source."""
    img, canvas = plan_canvas(img, options)
    img, composition = prepare_source(img, options)
    frames = render_frames(
        img, canvas, composition, options.frame_count, options.flag_reverse,
    )
    assembler = AnimationAssembler(OutputConfig(
        output_path=Path(output_path),
        frame_delay=FrameDelay(default_ms=options.frame_delay),
    ))
    return assembler.assemble(frames)


def spin(options: Options, input_path: str | os.PathLike,
         output_path: str | os.PathLike) -> Path:
    """Turn the image at *input_path* into a spinning GIF at *output_path*."""
    t0 = time.monotonic()
    with imaging.session():
        source = load_source(input_path)
        logger.info("Loaded %s (%s %dx%d)", input_path, source.mode, *source.size)
        result = spin_image(source, options, output_path)
    logger.info("Done in %.2fs -> %s", time.monotonic() - t0, result)
    return result
