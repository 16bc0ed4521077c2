"""
Voxel extrusion of a foreground mask into a closed triangle surface.

Each foreground cell becomes a K x K x Z cuboid. Top and bottom faces are
always emitted; a side face is emitted only where the cardinal neighbor is
background or outside the mask, so walls shared by two foreground cells are
culled. All triangles are wound counter-clockwise seen from outside.

Coordinates: x grows with the column, y is flipped so that mask row 0 ends
up at the top of the model (largest y), z spans [0, thickness].
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

_LOGGER = logging.getLogger(__name__)

# Foreground cells per extrusion chunk; bounds the (cells, 12, 3, 3) temporary.
CHUNK_CELLS = 65536

TRIANGLES_PER_CAP = 4
TRIANGLES_PER_SIDE = 2


def _as_mask(mask: np.ndarray) -> np.ndarray:
    m = np.asarray(mask)
    if m.ndim != 2:
        raise ValueError(f"Expected 2D mask, got shape {m.shape}")
    return m.astype(bool, copy=False)


def _validate_positive(name: str, value: float) -> float:
    v = float(value)
    if not math.isfinite(v) or v <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value!r}")
    return v


def _empty_triangles() -> np.ndarray:
    return np.zeros((0, 3, 3), dtype=np.float64)


def exposed_sides(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Per-cell open-side flags (left, right, lower, upper).

    "lower" is the y+1 neighbor in mask space, "upper" is y-1. A flag is True
    for a foreground cell whose neighbor in that direction is background or
    out of bounds.
    """
    m = _as_mask(mask)
    padded = np.pad(m, 1, mode="constant", constant_values=False)
    left = m & ~padded[1:-1, :-2]
    right = m & ~padded[1:-1, 2:]
    lower = m & ~padded[2:, 1:-1]
    upper = m & ~padded[:-2, 1:-1]
    return left, right, lower, upper


def count_triangles(mask: np.ndarray) -> int:
    """Exact number of triangles ``extrude_mask`` emits for ``mask``."""
    m = _as_mask(mask)
    n_cells = int(np.count_nonzero(m))
    n_sides = sum(int(np.count_nonzero(side)) for side in exposed_sides(m))
    return TRIANGLES_PER_CAP * n_cells + TRIANGLES_PER_SIDE * n_sides


def _points(xs: np.ndarray, ys: np.ndarray, z: float) -> np.ndarray:
    return np.stack([xs, ys, np.full_like(xs, z)], axis=1)


def extrude_rows(
    mask: np.ndarray,
    row_start: int,
    row_stop: int,
    thickness: float,
    scale: float,
) -> np.ndarray:
    """
    Extrude the foreground cells of rows [row_start, row_stop).

    Neighbor lookups see the whole mask, so concatenating the output of
    consecutive row ranges reproduces ``extrude_mask``.

    Returns:
        (N, 3, 3) float64 triangles, cells in row-major order
    """
    m = _as_mask(mask)
    z_top = _validate_positive("thickness", thickness)
    k = _validate_positive("scale", scale)
    h, w = m.shape

    start = max(0, int(row_start))
    stop = min(h, int(row_stop))
    if stop <= start:
        return _empty_triangles()

    ys, xs = np.nonzero(m[start:stop])
    if ys.size == 0:
        return _empty_triangles()
    ys = ys + start

    open_left = (xs == 0) | ~m[ys, np.maximum(xs - 1, 0)]
    open_right = (xs == w - 1) | ~m[ys, np.minimum(xs + 1, w - 1)]
    open_lower = (ys == h - 1) | ~m[np.minimum(ys + 1, h - 1), xs]
    open_upper = (ys == 0) | ~m[np.maximum(ys - 1, 0), xs]

    x0 = xs.astype(np.float64) * k
    x1 = (xs + 1).astype(np.float64) * k
    y0 = (h - ys - 1).astype(np.float64) * k
    y1 = (h - ys).astype(np.float64) * k

    c00 = _points(x0, y0, z_top)
    c10 = _points(x1, y0, z_top)
    c11 = _points(x1, y1, z_top)
    c01 = _points(x0, y1, z_top)
    b00 = _points(x0, y0, 0.0)
    b10 = _points(x1, y0, 0.0)
    b11 = _points(x1, y1, 0.0)
    b01 = _points(x0, y1, 0.0)

    faces = (
        # top (+z)
        (c01, c10, c11),
        (c01, c00, c10),
        # bottom (-z)
        (b11, b00, b01),
        (b11, b10, b00),
        # left (-x)
        (c01, b01, b00),
        (c01, b00, c00),
        # right (+x)
        (c10, b10, b11),
        (c10, b11, c11),
        # lower row neighbor (-y)
        (c00, b00, b10),
        (c00, b10, c10),
        # upper row neighbor (+y)
        (c11, b11, b01),
        (c11, b01, c01),
    )
    tris = np.stack([np.stack(face, axis=1) for face in faces], axis=1)

    always = np.ones_like(open_left)
    keep = np.column_stack(
        [
            always, always, always, always,
            open_left, open_left,
            open_right, open_right,
            open_lower, open_lower,
            open_upper, open_upper,
        ]
    )
    return tris[keep]


def extrude_mask(
    mask: np.ndarray,
    thickness: float,
    scale: float,
    *,
    rows_per_chunk: Optional[int] = None,
) -> np.ndarray:
    """
    Extrude every foreground cell of ``mask``.

    Args:
        mask: (Mh, Mw) bool mask, row 0 = top of the image
        thickness: extrusion depth Z in mm
        scale: cell edge length K in mm
        rows_per_chunk: rows processed per step (default sized from CHUNK_CELLS)

    Returns:
        (N, 3, 3) float64 triangles. Empty when the mask has no foreground.
    """
    m = _as_mask(mask)
    _validate_positive("thickness", thickness)
    _validate_positive("scale", scale)
    h, w = m.shape
    if h == 0 or w == 0:
        return _empty_triangles()

    step = int(rows_per_chunk) if rows_per_chunk else max(1, CHUNK_CELLS // max(1, w))
    if step < 1:
        raise ValueError(f"rows_per_chunk must be >= 1, got {rows_per_chunk!r}")

    chunks = [
        extrude_rows(m, start, start + step, thickness, scale)
        for start in range(0, h, step)
    ]
    chunks = [c for c in chunks if len(c)]
    if not chunks:
        return _empty_triangles()

    triangles = np.concatenate(chunks, axis=0)
    _LOGGER.debug("Extruded %dx%d mask into %d triangles", w, h, len(triangles))
    return triangles
