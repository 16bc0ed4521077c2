"""
Pixel budget estimation from a target STL file size.

This is a heuristic: the triangle count of a voxel extrusion depends on the
shape's perimeter, so the result only approximately bounds the output size.
"""

from __future__ import annotations

import logging
import math

from .mask_builder import count_foreground, validate_threshold
from .pixel_buffer import PixelBuffer
from .stl_writer import HEADER_BYTES, TRIANGLE_BYTES

_LOGGER = logging.getLogger(__name__)

# Average triangles per foreground pixel: 2 top + 2 bottom + exposed sides.
# Shape dependent; tune freely.
AVG_TRIANGLES_PER_PIXEL = 6

MIN_LINEAR_RATIO = 1e-6
BYTES_PER_MB = 1024 * 1024


def megabytes_to_bytes(megabytes: float) -> float:
    return float(megabytes) * BYTES_PER_MB


def desired_triangle_count(target_bytes: float) -> int:
    """Triangles that fit in ``target_bytes`` of binary STL (at least 1)."""
    total = max(1, int(math.floor(target_bytes)))
    return max(1, (total - HEADER_BYTES) // TRIANGLE_BYTES)


def estimate_max_px_for_count(
    target_bytes: float,
    foreground_count: int,
    width: int,
    height: int,
    *,
    avg_triangles_per_pixel: float = AVG_TRIANGLES_PER_PIXEL,
) -> int:
    """
    Pixel budget for a known foreground pixel count.

    Raises:
        ValueError / OverflowError: non-finite target or counts
    """
    longest = max(int(width), int(height))
    desired = desired_triangle_count(target_bytes)
    estimated = max(1, int(math.floor(foreground_count * avg_triangles_per_pixel)))
    if estimated <= desired:
        return longest

    ratio = desired / estimated
    linear_scale = math.sqrt(max(MIN_LINEAR_RATIO, ratio))
    return max(1, int(math.floor(longest * linear_scale)))


def estimate_max_px(
    target_bytes: float,
    buffer: PixelBuffer,
    threshold: int,
    *,
    avg_triangles_per_pixel: float = AVG_TRIANGLES_PER_PIXEL,
) -> int:
    """
    Estimate the pixel budget whose STL output is close to ``target_bytes``.

    Falls back to ``max(W, H)`` (no downsampling) when the estimate cannot
    be computed, e.g. for a non-finite target.
    """
    longest = buffer.longest_side
    threshold = validate_threshold(threshold)
    try:
        foreground = count_foreground(buffer, threshold)
        max_px = estimate_max_px_for_count(
            target_bytes,
            foreground,
            buffer.width,
            buffer.height,
            avg_triangles_per_pixel=avg_triangles_per_pixel,
        )
    except (ValueError, OverflowError, FloatingPointError, ZeroDivisionError) as e:
        _LOGGER.warning(
            "Size estimation failed (target=%r): %s; skipping downsampling",
            target_bytes,
            e,
        )
        return longest

    _LOGGER.debug(
        "Estimated max_px=%d for target=%s bytes (foreground=%d, longest=%d)",
        max_px,
        target_bytes,
        foreground,
        longest,
    )
    return max_px
