import unittest

from units import CM_TO_PIXELS, cm_to_millimeters, cm_to_pixels, mm_to_points, pixels_to_points


class UnitConversionTests(unittest.TestCase):
    def test_cm_to_pixels_uses_300_dpi_factor(self) -> None:
        self.assertEqual(CM_TO_PIXELS, 118.11)
        self.assertAlmostEqual(cm_to_pixels(5), 590.55)
        self.assertAlmostEqual(cm_to_pixels(8), 944.88)

    def test_cm_to_millimeters(self) -> None:
        self.assertEqual(cm_to_millimeters(5), 50)
        self.assertAlmostEqual(cm_to_millimeters(3.8), 38.0)

    def test_conversions_are_linear(self) -> None:
        for convert in (cm_to_pixels, cm_to_millimeters):
            self.assertEqual(convert(0), 0)
            for a, b in ((1.0, 2.5), (0.3, 3.1), (7.0, 0.0)):
                self.assertAlmostEqual(convert(a + b), convert(a) + convert(b))

    def test_points(self) -> None:
        self.assertAlmostEqual(mm_to_points(25.4), 72.0)
        self.assertAlmostEqual(pixels_to_points(300), 72.0)


if __name__ == "__main__":
    unittest.main()
