"""
gifspin -- Spin a still image into a seamless looping GIF.

Plans the canvas, alpha handling and per-frame rotation for a source image
and assembles the rotated frames into a timed, paged GIF.
"""

__version__ = "0.1.0"

from gifspin.types import (
    AlphaMode,
    Animation,
    Area,
    CanvasPlan,
    CompositionPlan,
    FrameSpec,
    Options,
)

__all__ = [
    "AlphaMode",
    "Animation",
    "Area",
    "CanvasPlan",
    "CompositionPlan",
    "FrameSpec",
    "Options",
]
