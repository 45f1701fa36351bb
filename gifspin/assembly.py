"""
Animation assembly.

Stacks rendered frames into one vertical strip, attaches per-page timing
and page height, and hands the result to the GIF encoder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from gifspin import imaging
from gifspin.exceptions import JoinError
from gifspin.types import Animation, Frame

logger = logging.getLogger(__name__)


@dataclass
class FrameDelay:
    """Frame timing: every page shows for ``default_ms`` milliseconds."""
    default_ms: int = 100

    def resolve(self, n_frames: int) -> list[int]:
        """Return a list of per-frame delays in milliseconds."""
        return [self.default_ms] * n_frames


@dataclass
class OutputConfig:
    """Where and how the animation is written."""
    output_path: Path = Path("output.gif")
    frame_delay: FrameDelay = field(default_factory=FrameDelay)
    comment: str = imaging.GIF_COMMENT


class AnimationAssembler:
    """Join frames into a paged strip and encode it.

    Usage::

        assembler = AnimationAssembler(OutputConfig(
            output_path=Path("spin.gif"),
            frame_delay=FrameDelay(default_ms=40),
        ))
        assembler.assemble(frames)
    """

    def __init__(self, config: OutputConfig) -> None:
        self.config = config

    def build(self, frames: Sequence[Frame]) -> Animation:
        """Stack *frames* (index order, frame 0 on top) into an ``Animation``."""
        if not frames:
            raise JoinError("no frames to join")
        ordered = sorted(frames, key=lambda f: f.spec.index)
        sizes = {f.size for f in ordered}
        if len(sizes) != 1:
            raise JoinError(f"frames differ in size: {sorted(sizes)}")
        page_height = ordered[0].size[1]
        strip = imaging.join_vertical([f.image for f in ordered])
        return Animation(
            strip=strip,
            page_height=page_height,
            delays=self.config.frame_delay.resolve(len(ordered)),
        )

    def encode(self, animation: Animation) -> Path:
        return imaging.encode_gif(
            animation, self.config.output_path, comment=self.config.comment,
        )

    def assemble(self, frames: Sequence[Frame]) -> Path:
        """Build the strip and write the GIF; returns the output path."""
        animation = self.build(frames)
        logger.info(
            "Assembled %d pages, page height %d, delay %s ms",
            animation.page_count, animation.page_height,
            animation.delays[0] if animation.delays else None,
        )
        return self.encode(animation)
