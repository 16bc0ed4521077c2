"""
Conversion options.

One immutable value per conversion, built by the caller (CLI, tests, other
frontends) and passed down to the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
from typing import Any, Optional

from .mask_builder import validate_threshold
from .runtime_defaults import (
    DEFAULT_MAX_PX,
    DEFAULT_SCALE_MM_PER_PX,
    DEFAULT_THICKNESS_MM,
    DEFAULT_THRESHOLD,
    RuntimeDefaults,
)
from .stl_writer import HEADER_SIZE

DEFAULT_MODEL_NAME = "extruded"


def _positive(name: str, value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(v) or v <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value!r}")
    return v


def _optional_positive(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    return _positive(name, value)


@dataclass(frozen=True)
class ConversionOptions:
    """
    Attributes:
        thickness_mm: extrusion depth
        threshold: gray cutoff in [0, 255], foreground iff gray < threshold
        width_mm: desired model width; wins over height_mm
        height_mm: desired model height
        scale_mm_per_px: base scale when neither width_mm nor height_mm is set
        max_px: pixel budget for the longer mask side
        target_size_mb: approximate STL size; ignored when max_px is set
        default_max_px: budget used when neither max_px nor target_size_mb is set
        name: STL header text
    """

    thickness_mm: float = DEFAULT_THICKNESS_MM
    threshold: int = DEFAULT_THRESHOLD
    width_mm: Optional[float] = None
    height_mm: Optional[float] = None
    scale_mm_per_px: float = DEFAULT_SCALE_MM_PER_PX
    max_px: Optional[int] = None
    target_size_mb: Optional[float] = None
    default_max_px: int = DEFAULT_MAX_PX
    name: str = DEFAULT_MODEL_NAME

    def __post_init__(self):
        object.__setattr__(self, "thickness_mm", _positive("thickness_mm", self.thickness_mm))
        object.__setattr__(self, "threshold", validate_threshold(self.threshold))
        object.__setattr__(self, "width_mm", _optional_positive("width_mm", self.width_mm))
        object.__setattr__(self, "height_mm", _optional_positive("height_mm", self.height_mm))
        object.__setattr__(self, "scale_mm_per_px", _positive("scale_mm_per_px", self.scale_mm_per_px))
        object.__setattr__(self, "target_size_mb", _optional_positive("target_size_mb", self.target_size_mb))

        if self.max_px is not None:
            max_px = _positive("max_px", self.max_px)
            object.__setattr__(self, "max_px", max(1, int(math.floor(max_px))))
        default_max_px = _positive("default_max_px", self.default_max_px)
        object.__setattr__(self, "default_max_px", max(1, int(math.floor(default_max_px))))

        name = str(self.name if self.name is not None else "")
        if len(name.encode("ascii", errors="replace")) > HEADER_SIZE:
            name = name[:HEADER_SIZE]
        object.__setattr__(self, "name", name)

    @classmethod
    def from_defaults(cls, defaults: RuntimeDefaults, **overrides: Any) -> "ConversionOptions":
        """Options seeded from runtime defaults; ``None`` overrides are ignored."""
        values: dict[str, Any] = {
            "thickness_mm": defaults.thickness_mm,
            "threshold": defaults.threshold,
            "scale_mm_per_px": defaults.scale_mm_per_px,
            "default_max_px": defaults.max_px,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_changes(self, **changes: Any) -> "ConversionOptions":
        return replace(self, **changes)

    def base_scale(self, width: int, height: int) -> float:
        """mm per source pixel, from the original (pre-resample) dimensions."""
        if self.width_mm is not None:
            return self.width_mm / int(width)
        if self.height_mm is not None:
            return self.height_mm / int(height)
        return self.scale_mm_per_px
