"""
Grayscale thresholding of RGBA pixels into a foreground ("ink") mask.
"""

from __future__ import annotations

import numpy as np

from .pixel_buffer import PixelBuffer

TRANSPARENT_GRAY = 255


def validate_threshold(threshold: int) -> int:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, np.integer)):
        raise ValueError(f"threshold must be an integer in [0, 255], got {threshold!r}")
    value = int(threshold)
    if value < 0 or value > 255:
        raise ValueError(f"threshold must be an integer in [0, 255], got {value}")
    return value


def grayscale(pixels: np.ndarray) -> np.ndarray:
    """
    Per-pixel gray level of an (..., 4) RGBA array.

    gray = round((R + G + B) / 3), half-up. Fully transparent pixels
    (alpha == 0) map to white regardless of color.

    Returns:
        uint8 array with the leading shape of ``pixels``
    """
    rgba = np.asarray(pixels)
    rgb_sum = rgba[..., :3].astype(np.int32).sum(axis=-1)
    # A sum of integers over 3 never has a .5 fraction, so +1 // 3 is half-up rounding.
    gray = (rgb_sum + 1) // 3
    gray = np.where(rgba[..., 3] == 0, TRANSPARENT_GRAY, gray)
    return gray.astype(np.uint8)


def threshold_pixels(pixels: np.ndarray, threshold: int) -> np.ndarray:
    """Foreground test (gray < threshold) for an arbitrary (..., 4) RGBA array."""
    t = validate_threshold(threshold)
    return grayscale(pixels).astype(np.int32) < t


def build_mask(buffer: PixelBuffer, threshold: int) -> np.ndarray:
    """
    Full-resolution mask for a pixel buffer.

    Returns:
        (H, W) bool array, True = foreground
    """
    return threshold_pixels(buffer.pixels, threshold)


def count_foreground(buffer: PixelBuffer, threshold: int) -> int:
    return int(np.count_nonzero(build_mask(buffer, threshold)))
