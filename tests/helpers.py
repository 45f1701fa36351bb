"""
Builders shared by the gifspin tests.
"""

from __future__ import annotations

from PIL import Image

from gifspin.types import Options


def make_options(**overrides) -> Options:
    """Options for a 100x100, 4-frame spin unless overridden."""
    values = dict(
        width=100,
        height=100,
        frame_count=4,
        frame_delay=100,
        flag_crop=False,
        flag_reverse=False,
        flag_flatten=False,
        background=0,
    )
    values.update(overrides)
    return Options(**values)


def make_marker_image(
    size: tuple[int, int] = (100, 100),
    mode: str = "RGB",
) -> Image.Image:
    """A blue image with a red block in the top-left quadrant.

    The block makes every quarter turn look different.
    """
    w, h = size
    img = Image.new(mode, size, (0, 0, 255, 255)[: len(mode)])
    img.paste((255, 0, 0, 255)[: len(mode)], (w // 8, h // 8, w // 2, h // 3))
    return img
