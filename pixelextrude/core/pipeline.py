"""
Image to STL conversion pipeline.

    pixel buffer -> mask (optionally resampled) -> extrusion -> binary STL

One pure entry point (``convert``) works on an in-memory pixel buffer and
returns bytes; ``convert_file`` is the file system adapter around it.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .extruder import extrude_mask
from .image_loader import ImageSource, load_image
from .model import TriangleModel
from .options import ConversionOptions
from .output_paths import stl_output_path
from .pixel_buffer import PixelBuffer
from .resampler import needs_resample, resample_mask
from .size_estimator import estimate_max_px, megabytes_to_bytes

_LOGGER = logging.getLogger(__name__)


class EmptyResultError(RuntimeError):
    """No foreground cells survived thresholding/resampling."""

    def __init__(self, message: str, *, stage: str, mask_size: tuple[int, int], threshold: int):
        super().__init__(message)
        self.stage = stage
        self.mask_size = mask_size
        self.threshold = threshold


@dataclass(frozen=True)
class ConversionResult:
    """
    Attributes:
        data: binary STL bytes
        model: extruded triangle model
        width_mm / height_mm: physical size from the original image dimensions
        scale_mm_per_px: mm per original pixel
        effective_scale_mm_per_px: mm per mask cell (after resampling)
        source_size: original (width, height) in pixels
        mask_size: extruded mask (width, height) in cells
        pixel_budget: max_px the mask was resampled against
        resampled: True when the mask is smaller than the source
    """

    data: bytes
    model: TriangleModel
    width_mm: float
    height_mm: float
    scale_mm_per_px: float
    effective_scale_mm_per_px: float
    source_size: tuple[int, int]
    mask_size: tuple[int, int]
    pixel_budget: int
    resampled: bool

    @property
    def n_triangles(self) -> int:
        return self.model.n_triangles

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def resolve_pixel_budget(options: ConversionOptions, buffer: PixelBuffer) -> int:
    """
    Pixel budget for the longer mask side.

    Precedence: max_px > target_size_mb (size estimate) > default_max_px.
    """
    if options.max_px is not None:
        return int(options.max_px)
    if options.target_size_mb is not None:
        target_bytes = megabytes_to_bytes(options.target_size_mb)
        return estimate_max_px(target_bytes, buffer, options.threshold)
    return int(options.default_max_px)


def effective_scale(base_scale: float, source_width: int, mask_width: int) -> float:
    """Cell edge length that keeps the physical width invariant under resampling."""
    return float(base_scale) * (int(source_width) / int(mask_width))


def build_model_mask(buffer: PixelBuffer, options: ConversionOptions) -> tuple[np.ndarray, int]:
    """
    Returns:
        (mask, pixel_budget)
    """
    budget = resolve_pixel_budget(options, buffer)
    mask = resample_mask(buffer, options.threshold, budget)
    return mask, budget


def convert(buffer: PixelBuffer, options: Optional[ConversionOptions] = None) -> ConversionResult:
    """
    Convert a pixel buffer to a binary STL model.

    Raises:
        EmptyResultError: the (resampled) mask has no foreground cells
    """
    opts = options if options is not None else ConversionOptions()
    src_w, src_h = buffer.size

    mask, budget = build_model_mask(buffer, opts)
    mask_h, mask_w = mask.shape
    resampled = needs_resample(src_w, src_h, budget)

    base = opts.base_scale(src_w, src_h)
    cell = effective_scale(base, src_w, mask_w)
    _LOGGER.info(
        "Converting %dx%d image: mask=%dx%d budget=%d scale=%.6f mm/px cell=%.6f mm",
        src_w,
        src_h,
        mask_w,
        mask_h,
        budget,
        base,
        cell,
    )

    triangles = extrude_mask(mask, opts.thickness_mm, cell)
    if len(triangles) == 0:
        stage = "resample" if resampled else "threshold"
        raise EmptyResultError(
            f"No foreground region detected: {mask_w}x{mask_h} mask after {stage} "
            f"has no pixels darker than threshold {opts.threshold}",
            stage=stage,
            mask_size=(mask_w, mask_h),
            threshold=opts.threshold,
        )

    model = TriangleModel(triangles=triangles, name=opts.name)
    data = model.to_stl_bytes()
    _LOGGER.info("Encoded %d triangles (%d bytes)", model.n_triangles, len(data))

    return ConversionResult(
        data=data,
        model=model,
        width_mm=src_w * base,
        height_mm=src_h * base,
        scale_mm_per_px=base,
        effective_scale_mm_per_px=cell,
        source_size=(src_w, src_h),
        mask_size=(mask_w, mask_h),
        pixel_budget=budget,
        resampled=resampled,
    )


def convert_source(source: ImageSource, options: Optional[ConversionOptions] = None) -> ConversionResult:
    """Decode an image (path, bytes or stream) and convert it."""
    return convert(load_image(source), options)


def convert_file(
    input_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    options: Optional[ConversionOptions] = None,
) -> tuple[Path, ConversionResult]:
    """
    Convert an image file and write ``<input>.stl`` (or ``output_path``).

    Nothing is written when the conversion fails.
    """
    result = convert_source(Path(input_path), options)
    out_path = stl_output_path(input_path, output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.data)
    _LOGGER.info("Wrote %s", out_path)
    return out_path, result
