"""
Core data structures shared by the planning stages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Tuple

from PIL import Image


class AlphaMode(enum.Enum):
    """How the source's transparency is handled before rotation."""
    NONE = "none"                   # No alpha, none needed (square crop).
    ADDED = "added"                 # Opaque alpha synthesised for the edges.
    PREMULTIPLIED = "premultiplied" # Source alpha kept, colour pre-scaled.
    FLATTENED = "flattened"         # Composited onto the background.


class ExtendMode(enum.Enum):
    """Policy for samples falling outside the source."""
    BACKGROUND = "background"


@dataclass(frozen=True)
class Options:
    """Validated spin options (see ``gifspin.config.validate_options``)."""
    width: int
    height: int
    frame_count: int
    frame_delay: int              # Milliseconds per frame
    flag_crop: bool = False
    flag_reverse: bool = False
    flag_flatten: bool = False
    background: int = 0           # Packed 0xRRGGBBAA

    def background_channels(self) -> tuple[float, float, float, float]:
        """Unpack ``background`` into four 0--255 channel values."""
        return unpack_background(self.background)


def unpack_background(value: int) -> tuple[float, float, float, float]:
    """Split a packed 32-bit colour into (R, G, B, A) floats.

    Negative values (a signed reading of the same bits) unpack to the
    same channels as their unsigned counterpart.
    """
    return (
        float(value >> 24 & 0xFF),
        float(value >> 16 & 0xFF),
        float(value >> 8 & 0xFF),
        float(value & 0xFF),
    )


@dataclass(frozen=True)
class Area:
    """Rectangle in output space: origin plus size, in pixels."""
    x: int
    y: int
    width: int
    height: int

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class CanvasPlan:
    """Final canvas chosen by the geometry planner."""
    width: int
    height: int
    square_crop: bool = False

    def __post_init__(self) -> None:
        if self.width < 4 or self.height < 4:
            raise ValueError(
                f"canvas {self.width}x{self.height} is smaller than 4x4"
            )


@dataclass(frozen=True)
class CompositionPlan:
    """Channel layout and fill colour used for every frame."""
    channel_count: int
    alpha_mode: AlphaMode
    background: Tuple[float, ...]

    @property
    def has_alpha(self) -> bool:
        return self.channel_count == 4


@dataclass(frozen=True)
class FrameSpec:
    """Rotation parameters for a single animation frame."""
    index: int
    angle: float                                  # Radians
    matrix: tuple[float, float, float, float]     # (a, b, c, d)
    input_center: tuple[float, float]             # (idx, idy)
    output_center: tuple[float, float]            # (odx, ody)
    area: Area
    background: Tuple[float, ...]
    extend: ExtendMode = ExtendMode.BACKGROUND


@dataclass(frozen=True)
class Frame:
    """A rendered frame together with the spec that produced it."""
    spec: FrameSpec
    image: Image.Image

    @property
    def size(self) -> tuple[int, int]:
        return (self.spec.area.width, self.spec.area.height)


@dataclass
class Animation:
    """Frames stacked into one strip, ready for the encoder."""
    strip: Image.Image
    page_height: int
    delays: list[int] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return self.strip.height // self.page_height
