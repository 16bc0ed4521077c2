"""
Binary STL encoding.

Layout (little-endian):
    80 bytes   ASCII header, zero padded
    uint32     triangle count N
    N records of 50 bytes:
        float32[3]     face normal
        float32[3][3]  vertices v0, v1, v2
        uint16         attribute byte count (always 0)
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Union

import numpy as np

HEADER_SIZE = 80
COUNT_SIZE = 4
HEADER_BYTES = HEADER_SIZE + COUNT_SIZE
TRIANGLE_BYTES = 50

STL_RECORD_DTYPE = np.dtype(
    [
        ("normal", "<f4", (3,)),
        ("vertices", "<f4", (3, 3)),
        ("attr", "<u2"),
    ]
)
assert STL_RECORD_DTYPE.itemsize == TRIANGLE_BYTES


class StlFormatError(ValueError):
    pass


def binary_stl_size(n_triangles: int) -> int:
    return HEADER_BYTES + TRIANGLE_BYTES * int(n_triangles)


def _as_triangles(triangles: np.ndarray) -> np.ndarray:
    tris = np.asarray(triangles, dtype=np.float64)
    if tris.size == 0:
        return np.zeros((0, 3, 3), dtype=np.float64)
    if tris.ndim != 3 or tris.shape[1:] != (3, 3):
        raise ValueError(f"Expected (N, 3, 3) triangle array, got shape {tris.shape}")
    return tris


def compute_face_normals(triangles: np.ndarray) -> np.ndarray:
    """
    Unit normals of (N, 3, 3) triangles: cross(v1 - v0, v2 - v0) / |...|.

    Degenerate triangles get a zero normal (their length is replaced by 1).
    """
    tris = _as_triangles(triangles)
    v0 = tris[:, 0]
    n = np.cross(tris[:, 1] - v0, tris[:, 2] - v0)
    norms = np.linalg.norm(n, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return n / norms


def encode_header(name: str = "") -> bytes:
    raw = str(name or "").encode("ascii", errors="replace")[:HEADER_SIZE]
    return raw.ljust(HEADER_SIZE, b"\x00")


def encode_binary_stl(triangles: np.ndarray, name: str = "") -> bytes:
    """
    Serialize triangles to binary STL bytes.

    Args:
        triangles: (N, 3, 3) vertex coordinates, counter-clockwise from outside
        name: header text (ASCII, truncated to 80 bytes)

    Returns:
        bytes of length 84 + 50 * N
    """
    tris = _as_triangles(triangles)
    records = np.zeros(len(tris), dtype=STL_RECORD_DTYPE)
    records["normal"] = compute_face_normals(tris)
    records["vertices"] = tris

    count = np.asarray([len(tris)], dtype="<u4").tobytes()
    return encode_header(name) + count + records.tobytes()


def decode_binary_stl(data: bytes) -> tuple[str, np.ndarray, np.ndarray]:
    """
    Parse binary STL bytes.

    Returns:
        (name, normals (N, 3) float32, triangles (N, 3, 3) float32)

    Raises:
        StlFormatError: truncated data or a count that disagrees with the size
    """
    buf = bytes(data)
    if len(buf) < HEADER_BYTES:
        raise StlFormatError(f"Binary STL too short: {len(buf)} bytes")

    name = buf[:HEADER_SIZE].split(b"\x00", 1)[0].decode("ascii", errors="replace")
    count = int(np.frombuffer(buf, dtype="<u4", count=1, offset=HEADER_SIZE)[0])
    expected = binary_stl_size(count)
    if len(buf) != expected:
        raise StlFormatError(
            f"Binary STL size mismatch: header says {count} triangles "
            f"({expected} bytes), got {len(buf)} bytes"
        )

    records = np.frombuffer(buf, dtype=STL_RECORD_DTYPE, count=count, offset=HEADER_BYTES)
    return name, records["normal"].copy(), records["vertices"].copy()


def write_binary_stl(
    target: Union[str, Path, BinaryIO],
    triangles: np.ndarray,
    name: str = "",
) -> int:
    """
    Write binary STL to a path or a writable binary stream.

    Returns:
        number of bytes written
    """
    data = encode_binary_stl(triangles, name=name)
    if isinstance(target, (str, Path)):
        out_path = Path(target)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(data)
    else:
        target.write(data)
    return len(data)
