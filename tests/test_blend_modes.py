"""Tests for the blend_modes module."""

import unittest

import numpy as np

from lumina.blend_modes import BlendMode, composite


class TestComposite(unittest.TestCase):
    """Test cases for layer compositing."""

    def setUp(self):
        """Set up test fixtures."""
        rng = np.random.default_rng(7)
        self.backdrop = rng.random((8, 12, 3)).astype(np.float32)

    def test_zero_alpha_keeps_backdrop(self):
        for mode in BlendMode:
            result = composite(self.backdrop, (1.0, 0.3, 0.0), 0.0, mode)
            np.testing.assert_allclose(result, self.backdrop, atol=1e-6)

    def test_normal_is_linear_mix(self):
        result = composite(self.backdrop, (1.0, 1.0, 1.0), 0.25, BlendMode.NORMAL)
        expected = 0.75 * self.backdrop + 0.25
        np.testing.assert_allclose(result, expected, atol=1e-6)

    def test_multiply_with_white_is_identity(self):
        result = composite(self.backdrop, (1.0, 1.0, 1.0), 1.0, BlendMode.MULTIPLY)
        np.testing.assert_allclose(result, self.backdrop, atol=1e-6)

    def test_multiply_with_black_is_black(self):
        result = composite(self.backdrop, (0.0, 0.0, 0.0), 1.0, BlendMode.MULTIPLY)
        np.testing.assert_allclose(result, 0.0, atol=1e-6)

    def test_overlay_with_mid_gray_is_identity(self):
        result = composite(self.backdrop, (0.5, 0.5, 0.5), 1.0, BlendMode.OVERLAY)
        np.testing.assert_allclose(result, self.backdrop, atol=1e-6)

    def test_overlay_formula(self):
        backdrop = np.array([[[0.2, 0.5, 0.8]]], dtype=np.float32)
        result = composite(backdrop, (0.6, 0.6, 0.6), 1.0, BlendMode.OVERLAY)
        # 2*b*s below the midpoint, screen above it
        expected = [2 * 0.2 * 0.6, 2 * 0.5 * 0.6, 1 - 2 * (1 - 0.8) * (1 - 0.6)]
        np.testing.assert_allclose(result[0, 0], expected, atol=1e-6)

    def test_alpha_map(self):
        alpha = np.zeros(self.backdrop.shape[:2], dtype=np.float32)
        alpha[:, 6:] = 1.0
        result = composite(self.backdrop, (0.0, 0.0, 0.0), alpha, BlendMode.MULTIPLY)
        np.testing.assert_allclose(result[:, :6], self.backdrop[:, :6], atol=1e-6)
        np.testing.assert_allclose(result[:, 6:], 0.0, atol=1e-6)

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            composite(self.backdrop, (0.0, 0.0, 0.0), 1.0, "screen")


if __name__ == "__main__":
    unittest.main()
