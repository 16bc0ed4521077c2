import unittest

import numpy as np

from pixelextrude.core.mask_builder import build_mask, count_foreground, grayscale, validate_threshold
from pixelextrude.core.pixel_buffer import PixelBuffer


def _rgba_row(*pixels):
    return np.asarray([list(pixels)], dtype=np.uint8)


class TestGrayscale(unittest.TestCase):
    def test_rounds_half_up_to_nearest(self):
        px = _rgba_row(
            (1, 0, 0, 255),  # 0.33 -> 0
            (1, 1, 0, 255),  # 0.67 -> 1
            (255, 255, 254, 255),  # 254.67 -> 255
            (10, 20, 31, 255),  # 20.33 -> 20
        )
        self.assertEqual(grayscale(px).tolist(), [[0, 1, 255, 20]])

    def test_transparent_pixels_are_white(self):
        px = _rgba_row((0, 0, 0, 0), (0, 0, 0, 1))
        self.assertEqual(grayscale(px).tolist(), [[255, 0]])


class TestBuildMask(unittest.TestCase):
    def test_foreground_is_strictly_below_threshold(self):
        px = _rgba_row((127, 127, 127, 255), (128, 128, 128, 255), (0, 0, 0, 255))
        mask = build_mask(PixelBuffer(px), 128)
        self.assertEqual(mask.dtype, np.bool_)
        self.assertEqual(mask.tolist(), [[True, False, True]])

    def test_transparent_black_is_background_even_at_max_threshold(self):
        px = _rgba_row((0, 0, 0, 0), (254, 254, 254, 255))
        mask = build_mask(PixelBuffer(px), 255)
        self.assertEqual(mask.tolist(), [[False, True]])

    def test_threshold_zero_gives_empty_mask(self):
        buf = PixelBuffer.from_array(np.zeros((3, 4), dtype=np.uint8))
        self.assertEqual(count_foreground(buf, 0), 0)
        self.assertEqual(count_foreground(buf, 1), 12)

    def test_threshold_monotonicity(self):
        rng = np.random.default_rng(7)
        px = rng.integers(0, 256, size=(16, 16, 4), dtype=np.uint8)
        buf = PixelBuffer(px)
        previous = build_mask(buf, 0)
        for t in range(1, 256):
            current = build_mask(buf, t)
            # Raising the threshold never turns a foreground cell off.
            self.assertFalse(np.any(previous & ~current))
            previous = current

    def test_mask_shape_matches_buffer(self):
        buf = PixelBuffer.from_array(np.full((5, 9, 3), 200, dtype=np.uint8))
        self.assertEqual(build_mask(buf, 128).shape, (5, 9))

    def test_invalid_threshold_rejected(self):
        for bad in (-1, 256, 12.5, True, "128"):
            with self.assertRaises(ValueError):
                validate_threshold(bad)


class TestPixelBuffer(unittest.TestCase):
    def test_rgb_gets_opaque_alpha(self):
        buf = PixelBuffer.from_array(np.zeros((2, 3, 3), dtype=np.uint8))
        self.assertEqual(buf.size, (3, 2))
        self.assertTrue(np.all(buf.pixels[..., 3] == 255))

    def test_buffer_is_read_only(self):
        buf = PixelBuffer.from_array(np.zeros((2, 2), dtype=np.uint8))
        with self.assertRaises(ValueError):
            buf.pixels[0, 0, 0] = 1

    def test_rejects_bad_shapes(self):
        with self.assertRaises(ValueError):
            PixelBuffer(np.zeros((2, 2, 3), dtype=np.uint8))
        with self.assertRaises(ValueError):
            PixelBuffer.from_array(np.zeros((2, 2, 2), dtype=np.uint8))
        with self.assertRaises(ValueError):
            PixelBuffer(np.zeros((0, 2, 4), dtype=np.uint8))


if __name__ == "__main__":
    unittest.main()
