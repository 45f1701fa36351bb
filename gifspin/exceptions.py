"""
Custom exception hierarchy for gifspin.

All gifspin exceptions inherit from GifSpinError so callers can catch
the entire family with a single except clause.  Each error carries a
``stage`` label naming the operation that failed; the CLI prints it as
the prefix of its one-line diagnostic.
"""

from __future__ import annotations


class GifSpinError(Exception):
    """Base exception for all gifspin errors."""

    stage = "gifspin"

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def diagnostic(self) -> str:
        """Return the single line reported to the user."""
        return f"{self.stage}: {self}"


class ValidationError(GifSpinError):
    """Raised when options are out of range, before any image work."""

    stage = "validate options"


class LoadError(GifSpinError):
    """Raised when the source image cannot be read or decoded."""

    stage = "load source"


class ColorConvertError(GifSpinError):
    """Raised when the source cannot be converted to sRGB."""

    stage = "colourspace source"


class CompositionError(GifSpinError):
    """Raised when adding alpha, premultiplying or flattening fails."""

    stage = "compose source"


class ResizeError(GifSpinError):
    """Raised when resizing the source fails."""

    stage = "resize source"


class CropError(GifSpinError):
    """Raised when cropping the source fails."""

    stage = "smartcrop source"


class ResampleError(GifSpinError):
    """Raised when rotating a single frame fails."""

    def __init__(self, message: str, frame_index: int) -> None:
        super().__init__(message, stage=f"affine frame {frame_index}")
        self.frame_index = frame_index


class JoinError(GifSpinError):
    """Raised when the frames cannot be joined into one strip."""

    stage = "arrayjoin target"


class EncodeError(GifSpinError):
    """Raised when writing the GIF fails."""

    stage = "gifsave target"


class TaskError(GifSpinError):
    """Raised when a dispatched spin task exits unsuccessfully."""

    stage = "task failed"

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class TaskTimeoutError(TaskError):
    """Raised when a dispatched spin task exceeds its timeout."""

    stage = "task timeout"
