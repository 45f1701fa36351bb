"""
Option validation and runtime limits.

Hard limits bound what the core will attempt at all.  Service limits are
the tighter, operator-tunable bounds applied to batch jobs; they are read
from the environment with the same variable names the deployed service
uses.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Mapping

from gifspin.exceptions import ValidationError
from gifspin.types import Options

logger = logging.getLogger(__name__)

DIMENSION_MIN = 4
DIMENSION_MAX = 65535
FRAME_COUNT_MIN = 1
FRAME_COUNT_MAX = 2048
FRAME_DELAY_MIN = 1
FRAME_DELAY_MAX = 600000
SQUARE_SIDE_MAX = 4096

BACKGROUND_MIN = -(2 ** 31)
BACKGROUND_MAX = 2 ** 32 - 1


def parse_int(text: str, name: str) -> int:
    """Parse an integer argument the way ``strtoll(text, NULL, 0)`` would.

    Accepts an optional sign and ``0x``/``0o``/``0b`` prefixes; a bare
    leading zero selects octal.
    """
    s = text.strip()
    body = s.lstrip("+-")
    try:
        if len(body) > 1 and body[0] == "0" and body[1].isdigit():
            value = int(body, 8)
            return -value if s.startswith("-") else value
        return int(s, 0)
    except ValueError:
        raise ValidationError(f"{name} is not an integer ({text!r})") from None


def parse_flag(text: str, name: str) -> bool:
    """Non-zero integers are true."""
    return parse_int(text, name) != 0


def validate_options(
    width: int,
    height: int,
    frame_count: int,
    frame_delay: int,
    flag_crop: bool = False,
    flag_reverse: bool = False,
    flag_flatten: bool = False,
    background: int = 0,
) -> Options:
    """Check every option against the hard limits and build ``Options``."""
    if not (DIMENSION_MIN <= width <= DIMENSION_MAX
            and DIMENSION_MIN <= height <= DIMENSION_MAX):
        raise ValidationError(
            f"image dimensions out of range (width {width}, height {height})"
        )
    if not FRAME_COUNT_MIN <= frame_count <= FRAME_COUNT_MAX:
        raise ValidationError(f"frame count out of range ({frame_count})")
    if not FRAME_DELAY_MIN <= frame_delay <= FRAME_DELAY_MAX:
        raise ValidationError(f"frame delay out of range ({frame_delay})")
    if not BACKGROUND_MIN <= background <= BACKGROUND_MAX:
        raise ValidationError(f"background out of range ({background})")
    return Options(
        width=width,
        height=height,
        frame_count=frame_count,
        frame_delay=frame_delay,
        flag_crop=bool(flag_crop),
        flag_reverse=bool(flag_reverse),
        flag_flatten=bool(flag_flatten),
        background=background,
    )


def options_from_mapping(data: Mapping[str, Any]) -> Options:
    """Build ``Options`` from a camelCase JSON object (batch job format)."""
    try:
        return validate_options(
            width=int(data["width"]),
            height=int(data["height"]),
            frame_count=int(data["frameCount"]),
            frame_delay=int(data["frameDelay"]),
            flag_crop=bool(data.get("flagCrop", False)),
            flag_reverse=bool(data.get("flagReverse", False)),
            flag_flatten=bool(data.get("flagFlatten", False)),
            background=int(data.get("background", 0)),
        )
    except KeyError as exc:
        raise ValidationError(f"missing option {exc.args[0]!r}") from None
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"invalid option value: {exc}") from None


def _env_int(environ: Mapping[str, str], key: str, fallback: int) -> int:
    raw = environ.get(key, "")
    if not raw:
        return fallback
    try:
        return int(raw, 10)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d.", key, raw, fallback)
        return fallback


@dataclass(frozen=True)
class ServiceLimits:
    """Operator-tunable bounds applied before a job is dispatched."""
    size_max: int = 5 * 1024 * 1024   # Input file bytes
    width_max: int = 1024
    height_max: int = 1024
    frame_count_min: int = 2
    frame_count_max: int = 120
    frame_delay_min: int = 5
    frame_delay_max: int = 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServiceLimits:
        env = os.environ if environ is None else environ
        d = cls()
        return cls(
            size_max=_env_int(env, "LIMIT_MAX_SIZE", d.size_max),
            width_max=_env_int(env, "LIMIT_MAX_WIDTH", d.width_max),
            height_max=_env_int(env, "LIMIT_MAX_HEIGHT", d.height_max),
            frame_count_min=_env_int(env, "LIMIT_MIN_FRAME_COUNT", d.frame_count_min),
            frame_count_max=_env_int(env, "LIMIT_MAX_FRAME_COUNT", d.frame_count_max),
            frame_delay_min=_env_int(env, "LIMIT_MIN_FRAME_DELAY", d.frame_delay_min),
            frame_delay_max=_env_int(env, "LIMIT_MAX_FRAME_DELAY", d.frame_delay_max),
        )

    def validate(self, options: Options, input_size: int | None = None) -> None:
        """Raise ``ValidationError`` for the first limit *options* break."""
        if input_size is not None and input_size > self.size_max:
            raise ValidationError(
                f"input size {input_size} is larger than maximum {self.size_max}"
            )
        checks = [
            ("width", options.width, None, self.width_max),
            ("height", options.height, None, self.height_max),
            ("frameCount", options.frame_count,
             self.frame_count_min, self.frame_count_max),
            ("frameDelay", options.frame_delay,
             self.frame_delay_min, self.frame_delay_max),
        ]
        for name, value, lo, hi in checks:
            if lo is not None and value < lo:
                raise ValidationError(f"{name} {value} is smaller than minimum {lo}")
            if value > hi:
                raise ValidationError(f"{name} {value} is larger than maximum {hi}")


def _default_command() -> list[str]:
    return [sys.executable, "-m", "gifspin"]


@dataclass(frozen=True)
class DispatchConfig:
    """Settings for running spin tasks concurrently."""
    size: int = 4                  # Simultaneous tasks
    timeout_s: float = 15.0        # Per task
    command: list[str] = field(default_factory=_default_command)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DispatchConfig:
        env = os.environ if environ is None else environ
        size = max(1, _env_int(env, "OPT_DISPATCH_SIZE", 4))
        timeout_ms = _env_int(env, "OPT_TIMEOUT_MS", 15000)
        return cls(size=size, timeout_s=timeout_ms / 1000.0)
