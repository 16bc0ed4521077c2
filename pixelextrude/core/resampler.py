"""
Nearest-neighbor downsampling to a pixel budget.

Colors are sampled from the original buffer and thresholded afterwards, so a
resampled mask never compounds quantization from an already-thresholded grid.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from .mask_builder import build_mask, threshold_pixels
from .pixel_buffer import PixelBuffer

_LOGGER = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def needs_resample(width: int, height: int, max_px: float) -> bool:
    return max(int(width), int(height)) > max_px


def resampled_shape(width: int, height: int, max_px: float) -> tuple[int, int]:
    """
    Mask size (width, height) for a pixel budget.

    Returns the source size unchanged when it already fits the budget.
    """
    w = int(width)
    h = int(height)
    if not needs_resample(w, h, max_px):
        return w, h

    budget = max(1, int(math.floor(max_px)))
    ratio = budget / max(w, h)
    new_w = max(1, _round_half_up(w * ratio))
    new_h = max(1, _round_half_up(h * ratio))
    return new_w, new_h


def sample_indices(src_len: int, dst_len: int) -> np.ndarray:
    """Source index for each destination index: min(src-1, floor(i*src/dst))."""
    idx = (np.arange(int(dst_len), dtype=np.int64) * int(src_len)) // int(dst_len)
    return np.minimum(idx, int(src_len) - 1)


def resample_mask(buffer: PixelBuffer, threshold: int, max_px: float) -> np.ndarray:
    """
    Threshold the buffer at a resolution whose longer side is at most ``max_px``.

    Args:
        buffer: original (full resolution) pixel buffer
        threshold: gray cutoff, foreground iff gray < threshold
        max_px: pixel budget for max(width, height)

    Returns:
        (Mh, Mw) bool mask. Same as ``build_mask`` when no downsampling is needed.
    """
    w, h = buffer.size
    if not needs_resample(w, h, max_px):
        return build_mask(buffer, threshold)

    new_w, new_h = resampled_shape(w, h, max_px)
    src_x = sample_indices(w, new_w)
    src_y = sample_indices(h, new_h)
    sampled = buffer.pixels[src_y[:, None], src_x[None, :]]

    _LOGGER.debug("Resampled %dx%d -> %dx%d (max_px=%s)", w, h, new_w, new_h, max_px)
    return threshold_pixels(sampled, threshold)
