"""
Canvas planning: resize the source to the requested width, then crop it
to the canvas the animation will spin on.
"""

from __future__ import annotations

import logging

from PIL import Image

from gifspin import imaging
from gifspin.config import SQUARE_SIDE_MAX
from gifspin.exceptions import CropError
from gifspin.types import CanvasPlan, Options

logger = logging.getLogger(__name__)


def plan_canvas(img: Image.Image, options: Options) -> tuple[Image.Image, CanvasPlan]:
    """Fit *img* to the requested canvas.

    Returns the resized/cropped image and the resulting ``CanvasPlan``.

    The requested width is authoritative: a source of any other width is
    scaled uniformly so its width matches, and its height follows the same
    scale.  With ``flag_crop`` the result is then cut to the largest centred
    square allowed by both the request and the image (capped at 4096).
    Otherwise anything overhanging the requested box is cropped away;
    a smaller image is never padded or upscaled here.
    """
    req_w, req_h = options.width, options.height
    nat_w, nat_h = img.size

    if nat_w != req_w:
        scale = req_w / nat_w
        logger.info("Resizing source %dx%d by %.4f", nat_w, nat_h, scale)
        img = imaging.resize(img, scale)
        nat_w, nat_h = img.size

    if options.flag_crop:
        side = min(SQUARE_SIDE_MAX, req_w, req_h, nat_w, nat_h)
        if (nat_w, nat_h) != (side, side):
            img = imaging.smart_crop(img, side, side, stage="smartcrop (square) source")
        width, height, square = side, side, True
    elif nat_h > req_h or nat_w > req_w:
        width, height = min(req_w, nat_w), min(req_h, nat_h)
        img = imaging.smart_crop(img, width, height, stage="smartcrop (height) source")
        square = False
    else:
        width, height, square = nat_w, nat_h, False

    if width < 4 or height < 4:
        raise CropError(
            f"canvas {width}x{height} is smaller than 4x4",
            stage="plan canvas",
        )

    plan = CanvasPlan(width=width, height=height, square_crop=square)
    logger.info("Canvas %dx%d (square crop: %s)", width, height, square)
    return img, plan
