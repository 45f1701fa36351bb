"""
Per-frame rotation planning and rendering.

Every frame is derived from the canvas, the composition and its own index,
so specs can be computed (and tested) without touching any pixels.
"""

from __future__ import annotations

import logging
import math
from typing import Iterator

from PIL import Image

from gifspin import imaging
from gifspin.types import AlphaMode, Area, CanvasPlan, CompositionPlan, Frame, FrameSpec

logger = logging.getLogger(__name__)

# (2 - sqrt(2)) / 4: how far a square must be inset on each side so the
# inset square stays inside the source at every rotation (worst at 45 deg).
INSET_FRACTION = 0.14644660940672627


def square_inset(width: int) -> int:
    return math.ceil(INSET_FRACTION * width)


def output_area(canvas: CanvasPlan, composition: CompositionPlan) -> Area:
    """Region of the rotated plane that becomes each frame."""
    w, h = canvas.width, canvas.height
    if canvas.square_crop:
        inset = square_inset(w)
        return Area(inset, inset, w - 2 * inset, h - 2 * inset)
    if composition.alpha_mode is AlphaMode.FLATTENED:
        return Area(0, 0, w, h)
    # One pixel of overscan so the rotated edge blends into the background.
    return Area(-1, -1, w + 2, h + 2)


def angle_step(frame_count: int, reverse: bool = False) -> float:
    step = 2.0 * math.pi / frame_count
    return -step if reverse else step


def rotation_matrix(angle: float) -> tuple[float, float, float, float]:
    a = math.cos(angle)
    b = -math.sin(angle)
    return (a, b, -b, a)


def frame_specs(
    canvas: CanvasPlan,
    composition: CompositionPlan,
    frame_count: int,
    reverse: bool = False,
) -> list[FrameSpec]:
    """Return the ordered ``FrameSpec`` list for one full turn."""
    step = angle_step(frame_count, reverse)
    area = output_area(canvas, composition)
    odx, ody = 0.5 * canvas.width, 0.5 * canvas.height
    specs = []
    for i in range(frame_count):
        angle = step * i
        specs.append(FrameSpec(
            index=i,
            angle=angle,
            matrix=rotation_matrix(angle),
            input_center=(-odx, -ody),
            output_center=(odx, ody),
            area=area,
            background=composition.background,
        ))
    return specs


def render_frame(source: Image.Image, spec: FrameSpec) -> Frame:
    logger.debug(
        "Frame %d: angle %.6f rad, area %s", spec.index, spec.angle, spec.area.as_tuple(),
    )
    image = imaging.affine_resample(
        source,
        spec.matrix,
        spec.input_center,
        spec.output_center,
        spec.area,
        spec.background,
        extend=spec.extend,
        frame_index=spec.index,
    )
    return Frame(spec=spec, image=image)


def iter_frames(source: Image.Image, specs: list[FrameSpec]) -> Iterator[Frame]:
    """Render *specs* in order; the first failure stops the sequence."""
    for spec in specs:
        yield render_frame(source, spec)


def render_frames(
    source: Image.Image,
    canvas: CanvasPlan,
    composition: CompositionPlan,
    frame_count: int,
    reverse: bool = False,
) -> list[Frame]:
    specs = frame_specs(canvas, composition, frame_count, reverse)
    frames = list(iter_frames(source, specs))
    logger.info(
        "Rendered %d frames of %dx%d", len(frames), specs[0].area.width, specs[0].area.height,
    )
    return frames
