"""
Runtime defaults for CLI processing.

Values can be overridden via environment variables. They are read once per
invocation into an immutable value; nothing here is mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os


ENV_THICKNESS_MM = "PIXELEXTRUDE_THICKNESS_MM"
ENV_THRESHOLD = "PIXELEXTRUDE_THRESHOLD"
ENV_MAX_PX = "PIXELEXTRUDE_MAX_PX"
ENV_SCALE_MM_PER_PX = "PIXELEXTRUDE_SCALE_MM_PER_PX"

DEFAULT_THICKNESS_MM = 2.0
DEFAULT_THRESHOLD = 128
DEFAULT_MAX_PX = 400
# 25.4 mm / 96 DPI
DEFAULT_SCALE_MM_PER_PX = 0.2645833333


@dataclass(frozen=True)
class RuntimeDefaults:
    thickness_mm: float
    threshold: int
    max_px: int
    scale_mm_per_px: float


def _read_int_env(
    env_name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_float_env(
    env_name: str,
    default: float,
    *,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if not math.isfinite(value):
        return default
    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def load_runtime_defaults() -> RuntimeDefaults:
    return RuntimeDefaults(
        thickness_mm=_read_float_env(ENV_THICKNESS_MM, DEFAULT_THICKNESS_MM, min_value=0.01, max_value=1000.0),
        threshold=_read_int_env(ENV_THRESHOLD, DEFAULT_THRESHOLD, min_value=0, max_value=255),
        max_px=_read_int_env(ENV_MAX_PX, DEFAULT_MAX_PX, min_value=1, max_value=100000),
        scale_mm_per_px=_read_float_env(
            ENV_SCALE_MM_PER_PX,
            DEFAULT_SCALE_MM_PER_PX,
            min_value=1e-6,
            max_value=1000.0,
        ),
    )
