"""
Triangle soup container for extruded models.
"""

from dataclasses import dataclass

import numpy as np
import trimesh

from .stl_writer import HEADER_SIZE, encode_binary_stl


@dataclass
class TriangleModel:
    """
    Extruded model: ordered triangles plus an STL header name.

    Attributes:
        triangles: (N, 3, 3) vertex coordinates in mm, CCW from outside
        name: header text, at most 80 ASCII bytes are written
        unit: coordinate unit (always 'mm' for extrusions)
    """
    triangles: np.ndarray
    name: str = "extruded"
    unit: str = "mm"

    def __post_init__(self):
        tris = np.asarray(self.triangles, dtype=np.float64)
        if tris.size == 0:
            tris = np.zeros((0, 3, 3), dtype=np.float64)
        if tris.ndim != 3 or tris.shape[1:] != (3, 3):
            raise ValueError(f"Expected (N, 3, 3) triangles, got shape {tris.shape}")
        self.triangles = tris
        self.name = str(self.name or "")[:HEADER_SIZE]

    @property
    def n_triangles(self) -> int:
        return int(len(self.triangles))

    @property
    def is_empty(self) -> bool:
        return self.n_triangles == 0

    @property
    def bounds(self) -> np.ndarray:
        """[[min_x, min_y, min_z], [max_x, max_y, max_z]]"""
        if self.is_empty:
            return np.zeros((2, 3), dtype=np.float64)
        pts = self.triangles.reshape(-1, 3)
        return np.array([pts.min(axis=0), pts.max(axis=0)])

    @property
    def extents(self) -> np.ndarray:
        return self.bounds[1] - self.bounds[0]

    @property
    def volume(self) -> float:
        """Signed enclosed volume; positive for an outward-wound closed surface."""
        if self.is_empty:
            return 0.0
        v0 = self.triangles[:, 0]
        v1 = self.triangles[:, 1]
        v2 = self.triangles[:, 2]
        return float(np.einsum("ij,ij->i", v0, np.cross(v1, v2)).sum() / 6.0)

    def to_stl_bytes(self) -> bytes:
        return encode_binary_stl(self.triangles, name=self.name)

    def to_trimesh(self) -> trimesh.Trimesh:
        """
        Indexed trimesh with coincident corners merged.

        Extrusion corners are computed identically for neighboring cells, so
        exact merging closes shared edges.
        """
        vertices = self.triangles.reshape(-1, 3)
        faces = np.arange(len(vertices), dtype=np.int64).reshape(-1, 3)
        mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
        mesh.merge_vertices()
        mesh.metadata["unit"] = self.unit
        mesh.metadata["name"] = self.name
        return mesh
