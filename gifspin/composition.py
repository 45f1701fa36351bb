"""
Alpha and background planning.

A square crop is sampled only inside its rotation-safe inset, so no output
pixel ever falls outside the source and no alpha is needed.  Without a crop
the rotated corners expose the background, which is either a transparent
alpha band or, when flattening, an opaque fill.
"""

from __future__ import annotations

import logging

from PIL import Image

from gifspin import imaging
from gifspin.types import AlphaMode, CompositionPlan, Options

logger = logging.getLogger(__name__)


def choose_alpha_mode(has_alpha: bool, flag_flatten: bool, flag_crop: bool) -> AlphaMode:
    """Pure decision table for the alpha strategy."""
    if has_alpha:
        return AlphaMode.FLATTENED if flag_flatten else AlphaMode.PREMULTIPLIED
    return AlphaMode.NONE if flag_crop else AlphaMode.ADDED


_CHANNELS = {
    AlphaMode.NONE: 3,
    AlphaMode.FLATTENED: 3,
    AlphaMode.ADDED: 4,
    AlphaMode.PREMULTIPLIED: 4,
}


def plan_composition(has_alpha: bool, options: Options) -> CompositionPlan:
    mode = choose_alpha_mode(has_alpha, options.flag_flatten, options.flag_crop)
    channels = _CHANNELS[mode]
    return CompositionPlan(
        channel_count=channels,
        alpha_mode=mode,
        background=options.background_channels()[:channels],
    )


def prepare_source(img: Image.Image, options: Options) -> tuple[Image.Image, CompositionPlan]:
    """Apply the composition plan to *img*.

    Returns the image every frame will sample from, and the plan.
    """
    plan = plan_composition(imaging.has_alpha(img), options)
    if plan.alpha_mode is AlphaMode.FLATTENED:
        img = imaging.flatten(img, plan.background)
    elif plan.alpha_mode is AlphaMode.PREMULTIPLIED:
        img = imaging.premultiply(img)
    elif plan.alpha_mode is AlphaMode.ADDED:
        img = imaging.add_alpha(img)
    logger.info(
        "Composition: %d channels, alpha %s, background %s",
        plan.channel_count, plan.alpha_mode.value, plan.background,
    )
    return img, plan
