import io
import struct
import tempfile
import unittest
from pathlib import Path

import numpy as np
import trimesh

from pixelextrude.core.extruder import extrude_mask
from pixelextrude.core.stl_writer import (
    StlFormatError,
    binary_stl_size,
    compute_face_normals,
    decode_binary_stl,
    encode_binary_stl,
    encode_header,
    write_binary_stl,
)


def _sample_triangles() -> np.ndarray:
    mask = np.asarray([[1, 1, 0], [0, 1, 1]], dtype=bool)
    return extrude_mask(mask, thickness=2.0, scale=0.2645833333)


class TestBinaryLayout(unittest.TestCase):
    def test_size_and_count(self):
        tris = _sample_triangles()
        data = encode_binary_stl(tris, name="extruded")
        n = len(tris)
        self.assertEqual(len(data), 84 + 50 * n)
        self.assertEqual(binary_stl_size(n), len(data))
        self.assertEqual(struct.unpack_from("<I", data, 80)[0], n)

    def test_first_record_fields(self):
        tri = np.asarray([[[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [0.0, 3.0, 0.0]]])
        data = encode_binary_stl(tri)
        record = struct.unpack_from("<12fH", data, 84)
        self.assertEqual(record[:3], (0.0, 0.0, 1.0))
        self.assertEqual(record[3:12], (0.0, 0.0, 0.0, 2.0, 0.0, 0.0, 0.0, 3.0, 0.0))
        self.assertEqual(record[12], 0)

    def test_header_zero_padded_and_truncated(self):
        self.assertEqual(encode_header("abc"), b"abc" + b"\x00" * 77)
        long_name = "x" * 100
        self.assertEqual(encode_header(long_name), b"x" * 80)
        data = encode_binary_stl(np.zeros((0, 3, 3)), name=long_name)
        self.assertEqual(len(data), 84)
        self.assertEqual(data[:80], b"x" * 80)

    def test_round_trip_recovers_float32_coordinates(self):
        tris = _sample_triangles()
        name, normals, decoded = decode_binary_stl(encode_binary_stl(tris, name="logo"))
        self.assertEqual(name, "logo")
        self.assertEqual(decoded.shape, tris.shape)
        self.assertTrue(np.array_equal(decoded, tris.astype(np.float32)))
        self.assertTrue(np.allclose(np.linalg.norm(normals, axis=1), 1.0, atol=1e-6))

    def test_trimesh_reads_output(self):
        tris = _sample_triangles()
        data = encode_binary_stl(tris, name="extruded")
        mesh = trimesh.load(io.BytesIO(data), file_type="stl")
        self.assertEqual(len(mesh.faces), len(tris))
        self.assertTrue(mesh.is_watertight)
        self.assertGreater(float(mesh.volume), 0.0)

    def test_decode_rejects_truncated_data(self):
        data = encode_binary_stl(_sample_triangles())
        with self.assertRaises(StlFormatError):
            decode_binary_stl(data[:-1])
        with self.assertRaises(StlFormatError):
            decode_binary_stl(data[:40])

    def test_write_to_path_and_stream(self):
        tris = _sample_triangles()
        expected = encode_binary_stl(tris, name="x")
        stream = io.BytesIO()
        self.assertEqual(write_binary_stl(stream, tris, name="x"), len(expected))
        self.assertEqual(stream.getvalue(), expected)
        with tempfile.TemporaryDirectory() as td:
            out = Path(td) / "nested" / "model.stl"
            write_binary_stl(out, tris, name="x")
            self.assertEqual(out.read_bytes(), expected)


class TestFaceNormals(unittest.TestCase):
    def test_unit_length(self):
        normals = compute_face_normals(_sample_triangles())
        self.assertTrue(np.allclose(np.linalg.norm(normals, axis=1), 1.0))

    def test_degenerate_triangle_gets_zero_normal(self):
        tri = np.asarray([[[1.0, 1.0, 1.0], [1.0, 1.0, 1.0], [2.0, 2.0, 2.0]]])
        normals = compute_face_normals(tri)
        self.assertTrue(np.all(np.isfinite(normals)))
        self.assertTrue(np.array_equal(normals, np.zeros((1, 3))))

    def test_rejects_bad_shape(self):
        with self.assertRaises(ValueError):
            compute_face_normals(np.zeros((2, 3)))


if __name__ == "__main__":
    unittest.main()
