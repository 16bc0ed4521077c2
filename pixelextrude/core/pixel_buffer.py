"""
Pixel buffer container.

Decoded images are held as a read-only ``(H, W, 4)`` uint8 RGBA array. Image
decoding itself lives in ``image_loader``; this module only normalizes
channel layouts so the rest of the pipeline can assume RGBA.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class PixelBuffer:
    """
    RGBA8 pixel grid.

    Attributes:
        pixels: (H, W, 4) uint8 array, row 0 is the top image row
    """

    pixels: np.ndarray

    def __post_init__(self):
        arr = np.asarray(self.pixels)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA array, got shape {arr.shape}")
        if arr.shape[0] < 1 or arr.shape[1] < 1:
            raise ValueError(f"Pixel buffer must be at least 1x1, got {arr.shape[1]}x{arr.shape[0]}")
        arr = np.array(arr, dtype=np.uint8, copy=True)
        arr.setflags(write=False)
        object.__setattr__(self, "pixels", arr)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @property
    def longest_side(self) -> int:
        return max(self.width, self.height)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from a gray, RGB or RGBA array.

        Gray and RGB inputs get an opaque alpha channel.
        """
        arr = np.asarray(array)
        if arr.dtype != np.uint8:
            if np.issubdtype(arr.dtype, np.floating) and not np.isfinite(arr).all():
                raise ValueError("Pixel array contains non-finite values")
            arr = np.clip(arr, 0, 255).astype(np.uint8)

        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, None], 3, axis=2)
        if arr.ndim != 3:
            raise ValueError(f"Unsupported pixel array shape: {arr.shape}")

        channels = int(arr.shape[2])
        if channels == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        elif channels != 4:
            raise ValueError(f"Unsupported channel count: {channels}")

        return cls(pixels=arr)
