"""
Pillow-backed image engine.

Every capability the planners need from an image library lives here so the
planning modules never touch Pillow directly.  Functions take an image and
return a new one; inputs are never modified.  Pillow and numpy failures are
translated into the gifspin error family at this boundary.
"""

from __future__ import annotations

import logging
import os
import struct
import warnings
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np
from PIL import Image

from gifspin.exceptions import (
    ColorConvertError,
    CompositionError,
    CropError,
    EncodeError,
    JoinError,
    LoadError,
    ResampleError,
    ResizeError,
)
from gifspin.types import Animation, Area, ExtendMode

logger = logging.getLogger(__name__)

# Pillow's native premultiplied-alpha mode.
PREMULTIPLIED_MODE = "RGBa"

# GIF transparency is binary; pixels below this alpha become transparent.
GIF_ALPHA_THRESHOLD = 128

GIF_COMMENT = "Generated by gifspin"

# The GIF screen descriptor stores width and height as unsigned 16-bit.
GIF_DIMENSION_MAX = 65535

SIXTEEN_BIT_MAX = 65535.0

_ALPHA_MODES = {"RGBA", "RGBa", "LA", "La", "PA"}

_ENGINE_ERRORS = (OSError, ValueError, MemoryError, Image.DecompressionBombError)


# ---------------------------------------------------------------------------
# Engine lifecycle
# ---------------------------------------------------------------------------

@contextmanager
def session(max_pixels: int | None = None) -> Iterator[None]:
    """Scope one pipeline run.

    Decompression-bomb warnings become errors for the duration, and an
    optional pixel cap replaces Pillow's default.  Both are restored on
    exit.
    """
    previous = Image.MAX_IMAGE_PIXELS
    if max_pixels is not None:
        Image.MAX_IMAGE_PIXELS = max_pixels
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", Image.DecompressionBombWarning)
            yield
    finally:
        Image.MAX_IMAGE_PIXELS = previous


# ---------------------------------------------------------------------------
# Loading and colour
# ---------------------------------------------------------------------------

def decode(path: str | os.PathLike) -> Image.Image:
    """Read the first page of *path* into memory."""
    try:
        with Image.open(path) as src:
            src.load()
            img = src.copy()
    except (*_ENGINE_ERRORS, Image.DecompressionBombWarning) as exc:
        raise LoadError(str(exc)) from exc
    # Palette and tRNS transparency lives in ``info``; fold it into a real
    # alpha band before the metadata is dropped.
    if "transparency" in img.info:
        img = img.convert("RGBA")
    return img


def strip_metadata(img: Image.Image) -> Image.Image:
    """Return a copy without EXIF, ICC, XMP or other ancillary fields."""
    out = img.copy()
    out.info = {}
    return out


def _to_eight_bit(img: Image.Image) -> Image.Image:
    """Scale a 16/32-bit integer greyscale image down to ``L``.

    ``I;16*`` and ``I`` are both read as 16-bit samples, so the scale
    depends on the mode alone.  Values outside 0..65535 saturate.
    """
    arr = np.asarray(img, dtype=np.float64)
    scaled = np.rint(arr * (255.0 / SIXTEEN_BIT_MAX))
    return Image.fromarray(np.clip(scaled, 0, 255).astype(np.uint8))


def to_srgb(img: Image.Image) -> Image.Image:
    """Convert any Pillow mode to ``RGB`` or ``RGBA``."""
    if img.mode in ("RGB", "RGBA"):
        return img
    try:
        if img.mode == "I" or img.mode.startswith("I;16"):
            img = _to_eight_bit(img)
        elif img.mode == "F":
            img = img.convert("L")
        target = "RGBA" if img.mode in _ALPHA_MODES else "RGB"
        return img.convert(target)
    except _ENGINE_ERRORS as exc:
        raise ColorConvertError(str(exc)) from exc


def has_alpha(img: Image.Image) -> bool:
    return img.mode in _ALPHA_MODES or "transparency" in img.info


# ---------------------------------------------------------------------------
# Alpha handling
# ---------------------------------------------------------------------------

def add_alpha(img: Image.Image) -> Image.Image:
    """Append a fully opaque alpha band."""
    try:
        return img.convert("RGBA")
    except _ENGINE_ERRORS as exc:
        raise CompositionError(str(exc), stage="addalpha source") from exc


def premultiply(img: Image.Image) -> Image.Image:
    """Scale colour by alpha, keeping alpha for blending."""
    try:
        return img.convert(PREMULTIPLIED_MODE)
    except _ENGINE_ERRORS as exc:
        raise CompositionError(str(exc), stage="premultiply source") from exc


def unpremultiply(img: Image.Image) -> Image.Image:
    if img.mode != PREMULTIPLIED_MODE:
        return img
    return img.convert("RGBA")


def flatten(img: Image.Image, background: Sequence[float]) -> Image.Image:
    """Composite *img* over an opaque colour and drop alpha."""
    try:
        fill = tuple(int(round(c)) for c in background[:3]) + (255,)
        canvas = Image.new("RGBA", img.size, fill)
        canvas.alpha_composite(img.convert("RGBA"))
        return canvas.convert("RGB")
    except _ENGINE_ERRORS as exc:
        raise CompositionError(str(exc), stage="flatten source") from exc


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def resize(img: Image.Image, scale: float) -> Image.Image:
    """Uniformly scale *img* with a bicubic kernel."""
    w, h = img.size
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    try:
        return img.resize(size, Image.Resampling.BICUBIC)
    except _ENGINE_ERRORS as exc:
        raise ResizeError(str(exc)) from exc


def smart_crop(img: Image.Image, width: int, height: int,
               stage: str = "smartcrop source") -> Image.Image:
    """Cut a *width* x *height* window from the centre of *img*."""
    w, h = img.size
    if width > w or height > h or width < 1 or height < 1:
        raise CropError(
            f"crop {width}x{height} does not fit image {w}x{h}", stage=stage,
        )
    left = (w - width) // 2
    top = (h - height) // 2
    try:
        return img.crop((left, top, left + width, top + height))
    except _ENGINE_ERRORS as exc:
        raise CropError(str(exc), stage=stage) from exc


def affine_coefficients(
    matrix: Sequence[float],
    input_center: Sequence[float],
    output_center: Sequence[float],
    area: Area,
) -> tuple[float, float, float, float, float, float]:
    """Invert the forward transform into Pillow's output-to-input form.

    The forward mapping is ``X = M (x + in) + out``; Pillow samples the
    input at ``(a u + b v + c, d u + e v + f)`` for each output pixel
    ``(u, v)`` of *area*.
    """
    a, b, c, d = matrix
    det = a * d - b * c
    if det == 0:
        raise ValueError("transform matrix is singular")
    ia, ib = d / det, -b / det
    ic, id_ = -c / det, a / det
    x0 = area.x - output_center[0]
    y0 = area.y - output_center[1]
    return (
        ia, ib, ia * x0 + ib * y0 - input_center[0],
        ic, id_, ic * x0 + id_ * y0 - input_center[1],
    )


def affine_resample(
    img: Image.Image,
    matrix: Sequence[float],
    input_center: Sequence[float],
    output_center: Sequence[float],
    area: Area,
    background: Sequence[float],
    extend: ExtendMode = ExtendMode.BACKGROUND,
    frame_index: int = 0,
) -> Image.Image:
    """Sample *area* of the transformed *img* into a new image."""
    if extend is not ExtendMode.BACKGROUND:
        raise ResampleError(f"unsupported extend mode {extend}", frame_index)
    try:
        coeffs = affine_coefficients(matrix, input_center, output_center, area)
        fill = tuple(int(round(c)) for c in background)
        return img.transform(
            (area.width, area.height),
            Image.Transform.AFFINE,
            coeffs,
            resample=Image.Resampling.BILINEAR,
            fillcolor=fill,
        )
    except _ENGINE_ERRORS as exc:
        raise ResampleError(str(exc), frame_index) from exc


# ---------------------------------------------------------------------------
# Strips and GIF output
# ---------------------------------------------------------------------------

def join_vertical(images: Sequence[Image.Image]) -> Image.Image:
    """Stack equally sized images top to bottom."""
    if not images:
        raise JoinError("no frames to join")
    first = images[0]
    w, h = first.size
    for i, img in enumerate(images):
        if img.size != (w, h) or img.mode != first.mode:
            raise JoinError(
                f"frame {i} is {img.mode} {img.size[0]}x{img.size[1]}, "
                f"expected {first.mode} {w}x{h}"
            )
    try:
        strip = Image.new(first.mode, (w, h * len(images)))
        for i, img in enumerate(images):
            strip.paste(img, (0, i * h))
    except _ENGINE_ERRORS as exc:
        raise JoinError(str(exc)) from exc
    return strip


def split_pages(strip: Image.Image, page_height: int) -> list[Image.Image]:
    """Cut a strip back into its pages."""
    if page_height < 1 or strip.height % page_height:
        raise EncodeError(
            f"strip height {strip.height} is not a multiple of "
            f"page height {page_height}"
        )
    w = strip.width
    return [
        strip.crop((0, top, w, top + page_height))
        for top in range(0, strip.height, page_height)
    ]


def _binarize_alpha(page: Image.Image) -> Image.Image:
    """Snap alpha to fully opaque or fully transparent (clear = black)."""
    arr = np.array(page.convert("RGBA"))
    clear = arr[..., 3] < GIF_ALPHA_THRESHOLD
    arr[clear] = 0
    arr[~clear, 3] = 255
    return Image.fromarray(arr)


def _gif_page(page: Image.Image) -> Image.Image:
    if page.mode in ("RGBA", PREMULTIPLIED_MODE):
        return _binarize_alpha(unpremultiply(page))
    return page.convert("RGB").quantize(
        colors=256,
        method=Image.Quantize.MEDIANCUT,
        dither=Image.Dither.FLOYDSTEINBERG,
    )


def encode_gif(animation: Animation, path: str | os.PathLike,
               comment: str = GIF_COMMENT) -> Path:
    """Write *animation* as a looping GIF.

    The file is written beside *path* first and moved into place only once
    Pillow has finished, so a failed encode never leaves a partial output.
    """
    out = Path(path)
    width, height = animation.strip.width, animation.page_height
    if width > GIF_DIMENSION_MAX or height > GIF_DIMENSION_MAX:
        raise EncodeError(
            f"page {width}x{height} exceeds the GIF limit of "
            f"{GIF_DIMENSION_MAX}x{GIF_DIMENSION_MAX}"
        )
    pages = [_gif_page(p) for p in split_pages(animation.strip, animation.page_height)]
    if len(animation.delays) != len(pages):
        raise EncodeError(
            f"{len(animation.delays)} delays for {len(pages)} pages"
        )
    params = {
        "save_all": True,
        "append_images": pages[1:],
        "duration": list(animation.delays),
        "loop": 0,
        "disposal": 2,
        "optimize": False,
    }
    if comment:
        params["comment"] = comment.encode("utf-8")
    tmp = out.with_name(f".{out.name}.partial")
    try:
        pages[0].save(str(tmp), format="GIF", **params)
        os.replace(tmp, out)
    except (*_ENGINE_ERRORS, struct.error) as exc:
        tmp.unlink(missing_ok=True)
        raise EncodeError(str(exc)) from exc
    logger.info("Wrote %d pages to %s", len(pages), out)
    return out
