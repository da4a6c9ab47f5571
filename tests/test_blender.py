"""Tests for the blender module."""

import unittest

from lumina.adjustments import ADJUSTMENT_FIELDS, AdjustmentSet
from lumina.blender import blend, check_intensity, merge
from lumina.errors import OutOfRange
from lumina.presets import AUTO_PORTRA_PRESET, get_available_presets, get_preset


class TestBlend(unittest.TestCase):
    """Test cases for preset intensity blending."""

    def setUp(self):
        """Set up test fixtures."""
        self.neutral = AdjustmentSet()
        self.presets = get_available_presets(include_auto=True)

    def test_zero_intensity_is_neutral(self):
        for preset in self.presets:
            self.assertEqual(blend(self.neutral, preset, 0), self.neutral, preset.id)

    def test_full_intensity_is_merge(self):
        for preset in self.presets:
            expected = self.neutral.merged(preset.values)
            self.assertEqual(blend(self.neutral, preset, 100), expected, preset.id)
            self.assertEqual(merge(self.neutral, preset), expected, preset.id)

    def test_half_intensity(self):
        result = blend(self.neutral, get_preset("portra-400"), 50)
        self.assertAlmostEqual(result.exposure, 4.0)
        self.assertAlmostEqual(result.contrast, -2.5)
        self.assertAlmostEqual(result.tint, -3.0)
        self.assertEqual(result.vignette, 0.0)

    def test_monotonic_in_intensity(self):
        for preset in self.presets:
            for field in ADJUSTMENT_FIELDS:
                values = [blend(self.neutral, preset, step)[field] for step in range(0, 101, 10)]
                target = preset.values.get(field, 0.0)
                if target >= 0:
                    self.assertEqual(values, sorted(values), f"{preset.id}.{field}")
                else:
                    self.assertEqual(values, sorted(values, reverse=True), f"{preset.id}.{field}")

    def test_omitted_fields_keep_baseline(self):
        baseline = AdjustmentSet(blur=4, rotate=2)
        result = blend(baseline, get_preset("cinestill"), 60)
        self.assertEqual(result.blur, 4.0)
        self.assertEqual(result.rotate, 2.0)
        self.assertAlmostEqual(result.vignette, 12.0)

    def test_does_not_accumulate(self):
        """Blending always starts from the baseline."""
        kodak = get_preset("kodak-gold")
        fuji = get_preset("fuji-pro")
        blend(self.neutral, kodak, 70)
        self.assertEqual(blend(self.neutral, fuji, 50), blend(AdjustmentSet(), fuji, 50))
        self.assertTrue(self.neutral.is_neutral())

    def test_accepts_mappings_and_sets(self):
        self.assertEqual(blend(self.neutral, {"exposure": 40}, 25).exposure, 10.0)
        self.assertEqual(blend(self.neutral, AdjustmentSet(warmth=-20), 50).warmth, -10.0)
        with self.assertRaises(ValueError):
            blend(self.neutral, {"gamma": 1}, 50)

    def test_intensity_domain(self):
        for intensity in (-1, 101, float("nan"), "high"):
            with self.assertRaises(OutOfRange):
                blend(self.neutral, AUTO_PORTRA_PRESET, intensity)
        self.assertEqual(check_intensity(0), 0.0)
        self.assertEqual(check_intensity("100"), 100.0)


if __name__ == "__main__":
    unittest.main()
